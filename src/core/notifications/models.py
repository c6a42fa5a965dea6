from typing import Literal, Optional

from pydantic import BaseModel, Field

from src.core.common.proposal_status import ProposalStatus

StatusChangeEventType = Literal["PROPOSAL_STATUS_CHANGED"]

STATUS_CHANGE_EVENT_TYPE: StatusChangeEventType = "PROPOSAL_STATUS_CHANGED"


class StatusChangeEvent(BaseModel):
    event_id: str = Field(description="Status event identifier.", examples=["pse_001"])
    event_type: StatusChangeEventType = Field(
        default=STATUS_CHANGE_EVENT_TYPE,
        description="Constant tag identifying a proposal status-change notification.",
        examples=["PROPOSAL_STATUS_CHANGED"],
    )
    proposal_id: str = Field(description="Proposal identifier.", examples=["pp_001"])
    previous_status: ProposalStatus = Field(
        description="Proposal status before the transition.",
        examples=["APPROVED"],
    )
    new_status: ProposalStatus = Field(
        description="Proposal status after the transition.",
        examples=["CONTRACTED"],
    )
    occurred_at: str = Field(
        description="UTC ISO8601 timestamp for the transition notification.",
        examples=["2026-02-19T12:00:00+00:00"],
    )


class StatusNotificationOutcome(BaseModel):
    delivered: bool = Field(
        description="Whether the status event was handed to the publisher successfully.",
        examples=[True],
    )
    topic: str = Field(description="Publisher topic used for the event.", examples=["proposal.status"])
    event: Optional[StatusChangeEvent] = Field(
        default=None,
        description="Status event envelope that was published or attempted.",
        examples=[{"proposal_id": "pp_001", "new_status": "CONTRACTED"}],
    )
    error: Optional[str] = Field(
        default=None,
        description="Delivery failure detail when the notification was not delivered.",
        examples=["STATUS_EVENT_PUBLISH_FAILED: connection refused"],
    )
