from typing import Optional, Protocol

from src.core.common.proposal_status import ProposalStatus
from src.core.proposals.models import ProposalRecord


class ProposalRepository(Protocol):
    def create_proposal(self, proposal: ProposalRecord) -> None: ...

    def update_proposal(
        self, proposal: ProposalRecord, *, expected_status: ProposalStatus
    ) -> None:
        """Persist ``proposal`` only if the stored status is still ``expected_status``.

        Raises ``ProposalStateConflictError`` when the stored status differs or
        the proposal is gone.
        """
        ...

    def get_proposal(self, *, proposal_id: str) -> Optional[ProposalRecord]: ...

    def list_proposals(self, *, status: Optional[ProposalStatus]) -> list[ProposalRecord]: ...
