from copy import deepcopy
from threading import Lock
from typing import Optional

from src.core.common.proposal_status import ProposalStatus
from src.core.proposals.models import ProposalRecord
from src.core.proposals.repository import ProposalRepository
from src.core.proposals.service import ProposalStateConflictError


class InMemoryProposalRepository(ProposalRepository):
    def __init__(self) -> None:
        self._lock = Lock()
        self._proposals: dict[str, ProposalRecord] = {}

    def create_proposal(self, proposal: ProposalRecord) -> None:
        with self._lock:
            self._proposals[proposal.proposal_id] = deepcopy(proposal)

    def update_proposal(
        self, proposal: ProposalRecord, *, expected_status: ProposalStatus
    ) -> None:
        with self._lock:
            stored = self._proposals.get(proposal.proposal_id)
            if stored is None or stored.status != expected_status:
                raise ProposalStateConflictError(
                    "STATE_CONFLICT: proposal status changed concurrently"
                )
            self._proposals[proposal.proposal_id] = deepcopy(proposal)

    def get_proposal(self, *, proposal_id: str) -> Optional[ProposalRecord]:
        with self._lock:
            proposal = self._proposals.get(proposal_id)
            return deepcopy(proposal) if proposal is not None else None

    def list_proposals(self, *, status: Optional[ProposalStatus]) -> list[ProposalRecord]:
        with self._lock:
            rows = list(self._proposals.values())

        rows = sorted(rows, key=lambda x: (x.created_at, x.proposal_id), reverse=True)
        if status is not None:
            rows = [row for row in rows if row.status == status]
        return [deepcopy(row) for row in rows]
