from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.core.common.proposal_status import ProposalStatus
from src.core.notifications.models import StatusNotificationOutcome


class ContractCreateRequest(BaseModel):
    proposal_id: str = Field(
        description="Identifier of the APPROVED proposal to contract.",
        examples=["pp_001"],
    )


class ContractDetail(BaseModel):
    proposal_id: str = Field(
        description="Contracted proposal identifier. Also identifies the contract.",
        examples=["pp_001"],
    )
    contract_number: str = Field(
        description="Generated contract number, immutable once issued.",
        examples=["CTR20260219A1B2C3D4"],
    )
    contracted_at: str = Field(
        description="UTC ISO8601 issuance timestamp.",
        examples=["2026-02-19T12:10:00+00:00"],
    )


class ContractResponse(BaseModel):
    contract: ContractDetail = Field(
        description="Issued contract, or the previously issued one on replay.",
        examples=[{"proposal_id": "pp_001", "contract_number": "CTR20260219A1B2C3D4"}],
    )
    already_existed: bool = Field(
        description="True when the proposal had already been contracted before this request.",
        examples=[False],
    )
    status_notification: Optional[StatusNotificationOutcome] = Field(
        default=None,
        description=(
            "Outcome of the CONTRACTED status notification sent by this request. "
            "Absent when the proposal status was already CONTRACTED."
        ),
        examples=[{"delivered": True, "topic": "proposal.status"}],
    )


class ProposalContractStatusResponse(BaseModel):
    proposal_id: str = Field(description="Proposal identifier.", examples=["pp_001"])
    status: ProposalStatus = Field(description="Current proposal status.", examples=["APPROVED"])
    can_contract: bool = Field(
        description="Whether the contracting operation would issue a new contract.",
        examples=[True],
    )
    contract: Optional[ContractDetail] = Field(
        default=None,
        description="Issued contract when the proposal is already contracted.",
        examples=[None],
    )


class ContractRecord(BaseModel):
    proposal_id: str = Field(description="Internal proposal identifier.", examples=["pp_001"])
    contract_number: str = Field(
        description="Internal contract number.", examples=["CTR20260219A1B2C3D4"]
    )
    contracted_at: datetime = Field(
        description="Internal issuance timestamp.", examples=["2026-02-19T12:10:00+00:00"]
    )
