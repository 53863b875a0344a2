"""Event publisher that writes assignment events to the application log."""

import logging

from fieldops.application.ports.event_publisher import EventPublisher
from fieldops.domain.events import AssignmentEvent

logger = logging.getLogger(__name__)


class LoggingEventPublisher(EventPublisher):
    async def publish(self, event: AssignmentEvent) -> None:
        logger.info(
            "event=%s assignment=%s service_order=%s provider=%s payload=%s",
            event.name,
            event.assignment_id,
            event.service_order_id,
            event.provider_id,
            event.payload,
        )
