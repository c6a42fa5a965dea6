import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from src.core.contracts.models import (
    ContractDetail,
    ContractRecord,
    ContractResponse,
    ProposalContractStatusResponse,
)
from src.core.contracts.repository import ContractRepository
from src.core.notifications.models import StatusNotificationOutcome
from src.core.notifications.notifier import StatusEventNotifier
from src.core.proposals.models import ProposalRecord
from src.core.proposals.repository import ProposalRepository
from src.core.proposals.service import (
    ProposalLifecycleError,
    ProposalNotFoundError,
    ProposalStateConflictError,
    apply_status,
)

_MAX_STATUS_SYNC_ATTEMPTS = 5

logger = logging.getLogger(__name__)


class ContractLifecycleError(ProposalLifecycleError):
    pass


class ContractNotFoundError(ContractLifecycleError):
    pass


class ContractInvalidStateError(ContractLifecycleError):
    pass


class ContractConflictError(ContractLifecycleError):
    pass


def build_contract(*, proposal_id: str, now: Optional[datetime] = None) -> ContractRecord:
    contracted_at = now or _utc_now()
    return ContractRecord(
        proposal_id=proposal_id,
        contract_number=f"CTR{contracted_at:%Y%m%d}{uuid.uuid4().hex[:8].upper()}",
        contracted_at=contracted_at,
    )


class ContractWorkflowService:
    """Sole path that moves a proposal to CONTRACTED.

    At most one contract exists per proposal. The existence check is not atomic
    with the insert, so the store's uniqueness on ``proposal_id`` is the real
    guard; a conflict on insert is resolved by returning the stored contract.
    A stored contract always wins: replays finish a status transition that an
    earlier call committed the contract for but never recorded.
    """

    def __init__(
        self,
        *,
        proposal_repository: ProposalRepository,
        contract_repository: ContractRepository,
        notifier: StatusEventNotifier,
    ) -> None:
        self._proposal_repository = proposal_repository
        self._contract_repository = contract_repository
        self._notifier = notifier

    def contract_proposal(self, *, proposal_id: str) -> ContractResponse:
        proposal = self._load_proposal(proposal_id)

        existing = self._contract_repository.get_contract(proposal_id=proposal_id)
        if existing is not None:
            return self._replay(existing, self._complete_contracting(proposal))

        if proposal.status != "APPROVED":
            raise ContractInvalidStateError(
                "CONTRACT_REQUIRES_APPROVED_PROPOSAL: current status " + proposal.status
            )

        contract = build_contract(proposal_id=proposal_id)
        try:
            self._contract_repository.create_contract(contract)
        except ContractConflictError:
            stored = self._contract_repository.get_contract(proposal_id=proposal_id)
            if stored is None:
                raise
            logger.info("Concurrent contract issuance resolved. ProposalID=%s", proposal_id)
            current = self._load_proposal(proposal_id)
            return self._replay(stored, self._complete_contracting(current))

        logger.info(
            "Contract issued. ProposalID=%s ContractNumber=%s",
            proposal_id,
            contract.contract_number,
        )
        notification = self._complete_contracting(proposal, now=contract.contracted_at)
        return ContractResponse(
            contract=self._to_detail(contract),
            already_existed=False,
            status_notification=notification,
        )

    def get_contract(self, *, proposal_id: str) -> ContractDetail:
        contract = self._contract_repository.get_contract(proposal_id=proposal_id)
        if contract is None:
            raise ContractNotFoundError("CONTRACT_NOT_FOUND")
        return self._to_detail(contract)

    def check_status(self, *, proposal_id: str) -> ProposalContractStatusResponse:
        proposal = self._load_proposal(proposal_id)
        contract = self._contract_repository.get_contract(proposal_id=proposal_id)
        return ProposalContractStatusResponse(
            proposal_id=proposal_id,
            status=proposal.status,
            can_contract=proposal.status == "APPROVED" and contract is None,
            contract=self._to_detail(contract) if contract is not None else None,
        )

    def _complete_contracting(
        self, proposal: ProposalRecord, *, now: Optional[datetime] = None
    ) -> Optional[StatusNotificationOutcome]:
        """Move a proposal whose contract is stored to CONTRACTED and notify once.

        Returns ``None`` when another call already recorded the transition.
        """
        current = proposal
        for _attempt in range(_MAX_STATUS_SYNC_ATTEMPTS):
            if current.status == "CONTRACTED":
                return None
            previous_status = current.status
            try:
                self._proposal_repository.update_proposal(
                    apply_status(current, "CONTRACTED", now=now),
                    expected_status=previous_status,
                )
            except ProposalStateConflictError:
                current = self._load_proposal(current.proposal_id)
                continue
            logger.info(
                "Proposal contracted. ProposalID=%s From=%s",
                current.proposal_id,
                previous_status,
            )
            return self._notifier.notify(
                proposal_id=current.proposal_id,
                previous_status=previous_status,
                new_status="CONTRACTED",
            )
        raise ProposalStateConflictError("STATE_CONFLICT: proposal status changed concurrently")

    def _load_proposal(self, proposal_id: str) -> ProposalRecord:
        proposal = self._proposal_repository.get_proposal(proposal_id=proposal_id)
        if proposal is None:
            raise ProposalNotFoundError("PROPOSAL_NOT_FOUND")
        return proposal

    def _replay(
        self,
        contract: ContractRecord,
        notification: Optional[StatusNotificationOutcome] = None,
    ) -> ContractResponse:
        return ContractResponse(
            contract=self._to_detail(contract),
            already_existed=True,
            status_notification=notification,
        )

    def _to_detail(self, contract: ContractRecord) -> ContractDetail:
        return ContractDetail(
            proposal_id=contract.proposal_id,
            contract_number=contract.contract_number,
            contracted_at=contract.contracted_at.isoformat(),
        )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
