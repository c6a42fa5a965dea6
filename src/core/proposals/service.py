import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from src.core.common.proposal_status import (
    INITIAL_STATUS,
    ProposalStatus,
    is_allowed_transition,
)
from src.core.notifications.models import StatusNotificationOutcome
from src.core.notifications.notifier import StatusEventNotifier
from src.core.proposals.models import (
    ProposalCreateRequest,
    ProposalListResponse,
    ProposalMutationResponse,
    ProposalRecord,
    ProposalStatusUpdateRequest,
    ProposalSummary,
)
from src.core.proposals.repository import ProposalRepository

if TYPE_CHECKING:
    from src.core.contracts.repository import ContractRepository

MIN_CLIENT_NAME_LENGTH = 3

logger = logging.getLogger(__name__)


class ProposalLifecycleError(Exception):
    pass


class ProposalNotFoundError(ProposalLifecycleError):
    pass


class ProposalValidationError(ProposalLifecycleError):
    pass


class ProposalStateConflictError(ProposalLifecycleError):
    pass


class ProposalTransitionError(ProposalLifecycleError):
    pass


def build_proposal(
    *, client_name: str, coverage_amount: Decimal, now: Optional[datetime] = None
) -> ProposalRecord:
    """Validate creation input and return a new IN_REVIEW proposal record.

    Field invariants are checked here only; records loaded from a store are
    trusted as-is.
    """
    normalized_name = (client_name or "").strip()
    if len(normalized_name) < MIN_CLIENT_NAME_LENGTH:
        raise ProposalValidationError(
            f"CLIENT_NAME_INVALID: at least {MIN_CLIENT_NAME_LENGTH} characters required"
        )
    if not coverage_amount.is_finite() or coverage_amount <= 0:
        raise ProposalValidationError("COVERAGE_AMOUNT_INVALID: must be greater than zero")

    created_at = now or _utc_now()
    return ProposalRecord(
        proposal_id=f"pp_{uuid.uuid4().hex[:12]}",
        client_name=normalized_name,
        coverage_amount=coverage_amount,
        status=INITIAL_STATUS,
        created_at=created_at,
        updated_at=created_at,
    )


def apply_status(
    proposal: ProposalRecord, new_status: ProposalStatus, *, now: Optional[datetime] = None
) -> ProposalRecord:
    if proposal.status == "CONTRACTED":
        raise ProposalTransitionError("PROPOSAL_ALREADY_CONTRACTED")
    return proposal.model_copy(update={"status": new_status, "updated_at": now or _utc_now()})


class ProposalWorkflowService:
    def __init__(
        self,
        *,
        repository: ProposalRepository,
        notifier: StatusEventNotifier,
        contract_repository: Optional["ContractRepository"] = None,
        strict_transitions: bool = False,
        allow_direct_contracted_status: bool = False,
    ) -> None:
        self._repository = repository
        self._notifier = notifier
        self._contract_repository = contract_repository
        self._strict_transitions = strict_transitions
        self._allow_direct_contracted_status = allow_direct_contracted_status

    def create_proposal(self, *, payload: ProposalCreateRequest) -> ProposalMutationResponse:
        proposal = build_proposal(
            client_name=payload.client_name,
            coverage_amount=payload.coverage_amount,
        )
        self._repository.create_proposal(proposal)
        logger.info("Proposal created. ProposalID=%s", proposal.proposal_id)
        return ProposalMutationResponse(proposal=self._to_summary(proposal))

    def get_proposal(self, *, proposal_id: str) -> ProposalSummary:
        return self._to_summary(self._load(proposal_id))

    def list_proposals(self, *, status: Optional[ProposalStatus] = None) -> ProposalListResponse:
        rows = self._repository.list_proposals(status=status)
        return ProposalListResponse(items=[self._to_summary(row) for row in rows])

    def set_status(
        self,
        *,
        proposal_id: str,
        payload: ProposalStatusUpdateRequest,
    ) -> ProposalMutationResponse:
        proposal = self._load(proposal_id)
        self._validate_expected_status(proposal.status, payload.expected_status)
        self._ensure_not_contracted(proposal)
        self._validate_target_status(proposal.status, payload.status)

        previous_status = proposal.status
        updated = apply_status(proposal, payload.status)
        self._repository.update_proposal(updated, expected_status=previous_status)
        logger.info(
            "Proposal status updated. ProposalID=%s From=%s To=%s",
            proposal_id,
            previous_status,
            updated.status,
        )

        notification: Optional[StatusNotificationOutcome] = None
        if previous_status != updated.status:
            notification = self._notifier.notify(
                proposal_id=proposal_id,
                previous_status=previous_status,
                new_status=updated.status,
            )
        return ProposalMutationResponse(
            proposal=self._to_summary(updated),
            previous_status=previous_status,
            status_notification=notification,
        )

    def approve(self, *, proposal_id: str) -> ProposalMutationResponse:
        return self.set_status(
            proposal_id=proposal_id,
            payload=ProposalStatusUpdateRequest(status="APPROVED"),
        )

    def _load(self, proposal_id: str) -> ProposalRecord:
        proposal = self._repository.get_proposal(proposal_id=proposal_id)
        if proposal is None:
            raise ProposalNotFoundError("PROPOSAL_NOT_FOUND")
        return proposal

    def _validate_expected_status(
        self,
        current_status: ProposalStatus,
        expected_status: Optional[ProposalStatus],
    ) -> None:
        if expected_status is not None and expected_status != current_status:
            raise ProposalStateConflictError("STATE_CONFLICT: expected_status mismatch")

    def _ensure_not_contracted(self, proposal: ProposalRecord) -> None:
        if proposal.status == "CONTRACTED":
            raise ProposalTransitionError("PROPOSAL_ALREADY_CONTRACTED")
        if self._contract_repository is None:
            return
        if self._contract_repository.get_contract(proposal_id=proposal.proposal_id) is not None:
            raise ProposalTransitionError("PROPOSAL_ALREADY_CONTRACTED")

    def _validate_target_status(
        self,
        current_status: ProposalStatus,
        target_status: ProposalStatus,
    ) -> None:
        if target_status == "CONTRACTED" and not self._allow_direct_contracted_status:
            raise ProposalTransitionError("CONTRACTING_REQUIRED: use the contracting operation")
        if self._strict_transitions and not is_allowed_transition(current_status, target_status):
            raise ProposalTransitionError("INVALID_TRANSITION")

    def _to_summary(self, proposal: ProposalRecord) -> ProposalSummary:
        return ProposalSummary(
            proposal_id=proposal.proposal_id,
            client_name=proposal.client_name,
            coverage_amount=proposal.coverage_amount,
            status=proposal.status,
            created_at=proposal.created_at.isoformat(),
            updated_at=proposal.updated_at.isoformat(),
        )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
