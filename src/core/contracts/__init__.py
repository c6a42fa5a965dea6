from src.core.contracts.models import (
    ContractCreateRequest,
    ContractDetail,
    ContractRecord,
    ContractResponse,
    ProposalContractStatusResponse,
)
from src.core.contracts.repository import ContractRepository
from src.core.contracts.service import (
    ContractConflictError,
    ContractInvalidStateError,
    ContractLifecycleError,
    ContractNotFoundError,
    ContractWorkflowService,
    build_contract,
)

__all__ = [
    "ContractConflictError",
    "ContractCreateRequest",
    "ContractDetail",
    "ContractInvalidStateError",
    "ContractLifecycleError",
    "ContractNotFoundError",
    "ContractRecord",
    "ContractRepository",
    "ContractResponse",
    "ContractWorkflowService",
    "ProposalContractStatusResponse",
    "build_contract",
]
