import logging
import uuid
from datetime import datetime, timezone

from src.core.common.proposal_status import ProposalStatus
from src.core.notifications.models import StatusChangeEvent, StatusNotificationOutcome
from src.core.notifications.publisher import StatusEventPublisher

DEFAULT_STATUS_EVENT_TOPIC = "proposal.status"

logger = logging.getLogger(__name__)


class StatusEventNotifier:
    """Builds status-change envelopes and hands them to the publisher.

    Delivery is best-effort: a publisher failure is logged and reported in the
    returned outcome, never raised, because the triggering write is already
    committed when the notifier runs.
    """

    def __init__(
        self,
        *,
        publisher: StatusEventPublisher,
        topic: str = DEFAULT_STATUS_EVENT_TOPIC,
    ) -> None:
        self._publisher = publisher
        self._topic = topic

    @property
    def topic(self) -> str:
        return self._topic

    def notify(
        self,
        *,
        proposal_id: str,
        previous_status: ProposalStatus,
        new_status: ProposalStatus,
    ) -> StatusNotificationOutcome:
        event = StatusChangeEvent(
            event_id=f"pse_{uuid.uuid4().hex[:12]}",
            proposal_id=proposal_id,
            previous_status=previous_status,
            new_status=new_status,
            occurred_at=_utc_now().isoformat(),
        )
        try:
            self._publisher.publish(self._topic, event.model_dump(mode="json"))
        except Exception as exc:
            logger.exception(
                "Status event publish failed. ProposalID=%s Topic=%s From=%s To=%s",
                proposal_id,
                self._topic,
                previous_status,
                new_status,
            )
            return StatusNotificationOutcome(
                delivered=False,
                topic=self._topic,
                event=event,
                error=f"STATUS_EVENT_PUBLISH_FAILED: {exc}",
            )

        logger.info(
            "Status event published. ProposalID=%s Topic=%s EventID=%s",
            proposal_id,
            self._topic,
            event.event_id,
        )
        return StatusNotificationOutcome(delivered=True, topic=self._topic, event=event)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
