from copy import deepcopy
from threading import Lock
from typing import Optional

from src.core.contracts.models import ContractRecord
from src.core.contracts.repository import ContractRepository
from src.core.contracts.service import ContractConflictError


class InMemoryContractRepository(ContractRepository):
    def __init__(self) -> None:
        self._lock = Lock()
        self._contracts: dict[str, ContractRecord] = {}

    def get_contract(self, *, proposal_id: str) -> Optional[ContractRecord]:
        with self._lock:
            contract = self._contracts.get(proposal_id)
            return deepcopy(contract) if contract is not None else None

    def create_contract(self, contract: ContractRecord) -> None:
        with self._lock:
            if contract.proposal_id in self._contracts:
                raise ContractConflictError("CONTRACT_ALREADY_EXISTS")
            self._contracts[contract.proposal_id] = deepcopy(contract)
