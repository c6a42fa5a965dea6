from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from src.core.common.proposal_status import ProposalStatus
from src.core.notifications.models import StatusNotificationOutcome


class ProposalCreateRequest(BaseModel):
    client_name: str = Field(
        description="Insured client name. Must have at least 3 characters after trimming.",
        examples=["Ana Costa"],
    )
    coverage_amount: Decimal = Field(
        description="Requested coverage amount. Must be strictly positive.",
        examples=["50000.00"],
    )


class ProposalStatusUpdateRequest(BaseModel):
    status: ProposalStatus = Field(
        description=(
            "Target proposal status. CONTRACTED is reachable only through the contracting "
            "endpoint."
        ),
        examples=["APPROVED"],
    )
    expected_status: Optional[ProposalStatus] = Field(
        default=None,
        description="Optional optimistic concurrency check against current proposal status.",
        examples=["IN_REVIEW"],
    )


class ProposalSummary(BaseModel):
    proposal_id: str = Field(description="Proposal identifier.", examples=["pp_001"])
    client_name: str = Field(description="Insured client name.", examples=["Ana Costa"])
    coverage_amount: Decimal = Field(
        description="Requested coverage amount.",
        examples=["50000.00"],
    )
    status: ProposalStatus = Field(description="Current proposal status.", examples=["IN_REVIEW"])
    created_at: str = Field(
        description="UTC ISO8601 creation timestamp of the proposal.",
        examples=["2026-02-19T12:00:00+00:00"],
    )
    updated_at: str = Field(
        description="UTC ISO8601 timestamp of the latest status mutation.",
        examples=["2026-02-19T12:05:00+00:00"],
    )


class ProposalMutationResponse(BaseModel):
    proposal: ProposalSummary = Field(
        description="Proposal snapshot after the operation.",
        examples=[{"proposal_id": "pp_001", "status": "APPROVED"}],
    )
    previous_status: Optional[ProposalStatus] = Field(
        default=None,
        description="Status before the operation. Absent for proposal creation.",
        examples=["IN_REVIEW"],
    )
    status_notification: Optional[StatusNotificationOutcome] = Field(
        default=None,
        description=(
            "Status-change notification outcome. Absent when the operation did not change the "
            "status. A failed delivery does not undo the committed change."
        ),
        examples=[{"delivered": True, "topic": "proposal.status"}],
    )


class ProposalListResponse(BaseModel):
    items: List[ProposalSummary] = Field(
        default_factory=list,
        description="Proposal summary rows, newest first.",
        examples=[[{"proposal_id": "pp_001", "client_name": "Ana Costa", "status": "IN_REVIEW"}]],
    )


class ProposalRecord(BaseModel):
    proposal_id: str = Field(description="Internal proposal identifier.", examples=["pp_001"])
    client_name: str = Field(description="Internal trimmed client name.", examples=["Ana Costa"])
    coverage_amount: Decimal = Field(
        description="Internal coverage amount.", examples=["50000.00"]
    )
    status: ProposalStatus = Field(description="Internal proposal status.", examples=["IN_REVIEW"])
    created_at: datetime = Field(
        description="Internal creation timestamp.", examples=["2026-02-19T12:00:00+00:00"]
    )
    updated_at: datetime = Field(
        description="Internal latest status-mutation timestamp.",
        examples=["2026-02-19T12:05:00+00:00"],
    )
