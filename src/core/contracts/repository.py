from typing import Optional, Protocol

from src.core.contracts.models import ContractRecord


class ContractRepository(Protocol):
    def get_contract(self, *, proposal_id: str) -> Optional[ContractRecord]: ...

    def create_contract(self, contract: ContractRecord) -> None:
        """Insert a contract; raise ContractConflictError when one exists for the proposal."""
        ...
