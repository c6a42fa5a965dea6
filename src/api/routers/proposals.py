from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from src.api.routers import proposals_config, status_events_config
from src.api.routers.proposal_http_errors import raise_proposal_http_exception
from src.core.contracts import ContractRepository, ContractWorkflowService
from src.core.notifications import StatusEventNotifier, StatusEventPublisher
from src.core.proposals import (
    ProposalCreateRequest,
    ProposalLifecycleError,
    ProposalListResponse,
    ProposalMutationResponse,
    ProposalRepository,
    ProposalStatus,
    ProposalStatusUpdateRequest,
    ProposalSummary,
    ProposalWorkflowService,
)

router = APIRouter(tags=["Insurance Proposal Lifecycle"])

_REPOSITORY: Optional[ProposalRepository] = None
_CONTRACT_REPOSITORY: Optional[ContractRepository] = None
_PUBLISHER: Optional[StatusEventPublisher] = None
_SERVICE: Optional[ProposalWorkflowService] = None
_CONTRACT_SERVICE: Optional[ContractWorkflowService] = None

_BACKEND_INIT_ERRORS = (ConnectionError, OSError, TimeoutError, TypeError, ValueError)


def get_proposal_repository() -> ProposalRepository:
    global _REPOSITORY
    if _REPOSITORY is None:
        try:
            _REPOSITORY = proposals_config.build_repository()
        except RuntimeError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
            ) from exc
        except _BACKEND_INIT_ERRORS as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="PROPOSAL_POSTGRES_CONNECTION_FAILED",
            ) from exc
    return _REPOSITORY


def get_contract_repository() -> ContractRepository:
    global _CONTRACT_REPOSITORY
    if _CONTRACT_REPOSITORY is None:
        try:
            _CONTRACT_REPOSITORY = proposals_config.build_contract_repository()
        except RuntimeError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
            ) from exc
        except _BACKEND_INIT_ERRORS as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="CONTRACT_POSTGRES_CONNECTION_FAILED",
            ) from exc
    return _CONTRACT_REPOSITORY


def open_status_event_publisher() -> StatusEventPublisher:
    global _PUBLISHER
    if _PUBLISHER is None:
        _PUBLISHER = status_events_config.build_status_event_publisher()
    return _PUBLISHER


def get_status_event_publisher() -> StatusEventPublisher:
    try:
        return open_status_event_publisher()
    except RuntimeError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc


def close_status_event_publisher() -> None:
    global _PUBLISHER
    global _SERVICE
    global _CONTRACT_SERVICE
    if _PUBLISHER is not None:
        _PUBLISHER.close()
    _PUBLISHER = None
    _SERVICE = None
    _CONTRACT_SERVICE = None


def _build_notifier() -> StatusEventNotifier:
    return StatusEventNotifier(
        publisher=get_status_event_publisher(),
        topic=status_events_config.status_event_topic(),
    )


def get_proposal_workflow_service() -> ProposalWorkflowService:
    global _SERVICE
    if _SERVICE is None:
        _SERVICE = ProposalWorkflowService(
            repository=get_proposal_repository(),
            notifier=_build_notifier(),
            contract_repository=get_contract_repository(),
            strict_transitions=proposals_config.strict_transitions_enabled(),
            allow_direct_contracted_status=proposals_config.direct_contracted_status_allowed(),
        )
    return _SERVICE


def get_contract_workflow_service() -> ContractWorkflowService:
    global _CONTRACT_SERVICE
    if _CONTRACT_SERVICE is None:
        _CONTRACT_SERVICE = ContractWorkflowService(
            proposal_repository=get_proposal_repository(),
            contract_repository=get_contract_repository(),
            notifier=_build_notifier(),
        )
    return _CONTRACT_SERVICE


def reset_proposal_workflow_service_for_tests() -> None:
    global _REPOSITORY
    global _CONTRACT_REPOSITORY
    global _PUBLISHER
    global _SERVICE
    global _CONTRACT_SERVICE
    _REPOSITORY = None
    _CONTRACT_REPOSITORY = None
    _PUBLISHER = None
    _SERVICE = None
    _CONTRACT_SERVICE = None


@router.post(
    "/proposals",
    response_model=ProposalMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Insurance Proposal",
    description=(
        "Validates client name and coverage amount and persists a new proposal in IN_REVIEW. "
        "Invalid input is rejected without persisting anything."
    ),
)
def create_proposal(
    payload: ProposalCreateRequest,
    service: ProposalWorkflowService = Depends(get_proposal_workflow_service),
) -> ProposalMutationResponse:
    try:
        return service.create_proposal(payload=payload)
    except ProposalLifecycleError as exc:
        raise_proposal_http_exception(exc)


@router.get(
    "/proposals",
    response_model=ProposalListResponse,
    status_code=status.HTTP_200_OK,
    summary="List Proposals",
    description="Lists proposals newest first, optionally filtered by exact status.",
)
def list_proposals(
    proposal_status: Annotated[
        Optional[ProposalStatus],
        Query(alias="status", description="Exact status filter.", examples=["APPROVED"]),
    ] = None,
    service: ProposalWorkflowService = Depends(get_proposal_workflow_service),
) -> ProposalListResponse:
    return service.list_proposals(status=proposal_status)


@router.get(
    "/proposals/{proposal_id}",
    response_model=ProposalSummary,
    status_code=status.HTTP_200_OK,
    summary="Get Proposal",
    description="Returns one proposal by identifier.",
)
def get_proposal(
    proposal_id: Annotated[
        str,
        Path(description="Persisted proposal identifier.", examples=["pp_001"]),
    ],
    service: ProposalWorkflowService = Depends(get_proposal_workflow_service),
) -> ProposalSummary:
    try:
        return service.get_proposal(proposal_id=proposal_id)
    except ProposalLifecycleError as exc:
        raise_proposal_http_exception(exc)


@router.put(
    "/proposals/{proposal_id}/status",
    response_model=ProposalMutationResponse,
    status_code=status.HTTP_200_OK,
    summary="Set Proposal Status",
    description=(
        "Moves a proposal to a new status. Contracted proposals are immutable and CONTRACTED "
        "itself is reachable only through the contracting endpoint. A status-change event is "
        "published when the status changes; publish failures are reported in "
        "`status_notification` without undoing the change."
    ),
)
def set_proposal_status(
    proposal_id: Annotated[
        str,
        Path(description="Persisted proposal identifier.", examples=["pp_001"]),
    ],
    payload: ProposalStatusUpdateRequest,
    service: ProposalWorkflowService = Depends(get_proposal_workflow_service),
) -> ProposalMutationResponse:
    try:
        return service.set_status(proposal_id=proposal_id, payload=payload)
    except ProposalLifecycleError as exc:
        raise_proposal_http_exception(exc)


@router.post(
    "/proposals/{proposal_id}/approve",
    response_model=ProposalMutationResponse,
    status_code=status.HTTP_200_OK,
    summary="Approve Proposal",
    description="Shortcut for setting the proposal status to APPROVED.",
)
def approve_proposal(
    proposal_id: Annotated[
        str,
        Path(description="Persisted proposal identifier.", examples=["pp_001"]),
    ],
    service: ProposalWorkflowService = Depends(get_proposal_workflow_service),
) -> ProposalMutationResponse:
    try:
        return service.approve(proposal_id=proposal_id)
    except ProposalLifecycleError as exc:
        raise_proposal_http_exception(exc)
