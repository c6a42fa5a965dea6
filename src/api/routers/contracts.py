from typing import Annotated

from fastapi import APIRouter, Depends, Path, Response, status

from src.api.routers.proposal_http_errors import raise_proposal_http_exception
from src.api.routers.proposals import get_contract_workflow_service
from src.core.contracts import (
    ContractCreateRequest,
    ContractDetail,
    ContractResponse,
    ContractWorkflowService,
    ProposalContractStatusResponse,
)
from src.core.proposals import ProposalLifecycleError

router = APIRouter(tags=["Insurance Contracting"])


@router.post(
    "/contracts",
    response_model=ContractResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Contract Approved Proposal",
    description=(
        "Issues the contract for an APPROVED proposal and moves it to CONTRACTED. Repeated or "
        "concurrent requests for the same proposal return the existing contract with "
        "`already_existed=true` and HTTP 200."
    ),
)
def contract_proposal(
    payload: ContractCreateRequest,
    response: Response,
    service: ContractWorkflowService = Depends(get_contract_workflow_service),
) -> ContractResponse:
    try:
        result = service.contract_proposal(proposal_id=payload.proposal_id)
    except ProposalLifecycleError as exc:
        raise_proposal_http_exception(exc)
    if result.already_existed:
        response.status_code = status.HTTP_200_OK
    return result


@router.get(
    "/contracts/status/{proposal_id}",
    response_model=ProposalContractStatusResponse,
    status_code=status.HTTP_200_OK,
    summary="Check Proposal Contracting Status",
    description="Returns the proposal status and its contract when already contracted.",
)
def check_proposal_contract_status(
    proposal_id: Annotated[
        str,
        Path(description="Persisted proposal identifier.", examples=["pp_001"]),
    ],
    service: ContractWorkflowService = Depends(get_contract_workflow_service),
) -> ProposalContractStatusResponse:
    try:
        return service.check_status(proposal_id=proposal_id)
    except ProposalLifecycleError as exc:
        raise_proposal_http_exception(exc)


@router.get(
    "/contracts/{proposal_id}",
    response_model=ContractDetail,
    status_code=status.HTTP_200_OK,
    summary="Get Contract",
    description="Returns the contract issued for a proposal.",
)
def get_contract(
    proposal_id: Annotated[
        str,
        Path(description="Contracted proposal identifier.", examples=["pp_001"]),
    ],
    service: ContractWorkflowService = Depends(get_contract_workflow_service),
) -> ContractDetail:
    try:
        return service.get_contract(proposal_id=proposal_id)
    except ProposalLifecycleError as exc:
        raise_proposal_http_exception(exc)
