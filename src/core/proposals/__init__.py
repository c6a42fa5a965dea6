from src.core.common.proposal_status import PROPOSAL_STATUSES, ProposalStatus
from src.core.proposals.models import (
    ProposalCreateRequest,
    ProposalListResponse,
    ProposalMutationResponse,
    ProposalRecord,
    ProposalStatusUpdateRequest,
    ProposalSummary,
)
from src.core.proposals.repository import ProposalRepository
from src.core.proposals.service import (
    ProposalLifecycleError,
    ProposalNotFoundError,
    ProposalStateConflictError,
    ProposalTransitionError,
    ProposalValidationError,
    ProposalWorkflowService,
    apply_status,
    build_proposal,
)

__all__ = [
    "PROPOSAL_STATUSES",
    "ProposalCreateRequest",
    "ProposalLifecycleError",
    "ProposalListResponse",
    "ProposalMutationResponse",
    "ProposalNotFoundError",
    "ProposalRecord",
    "ProposalRepository",
    "ProposalStateConflictError",
    "ProposalStatus",
    "ProposalStatusUpdateRequest",
    "ProposalSummary",
    "ProposalTransitionError",
    "ProposalValidationError",
    "ProposalWorkflowService",
    "apply_status",
    "build_proposal",
]
