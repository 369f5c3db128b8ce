from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol

logger = logging.getLogger(__name__)

PAYMENT_SUBMITTED = "payment.submitted"
ATTENDANCE_LOCKED = "attendance.locked"


class EventPublisher(Protocol):
    """Outbound notification/event bus."""

    def publish(self, name: str, payload: Mapping[str, Any]) -> None:
        raise NotImplementedError


class LoggingEventPublisher(EventPublisher):
    """Default publisher: writes events to the log for a downstream shipper."""

    def publish(self, name: str, payload: Mapping[str, Any]) -> None:
        logger.info("event %s %s", name, dict(payload))


def emit(publisher: EventPublisher | None, name: str, payload: Mapping[str, Any]) -> None:
    """Fire-and-forget: a failing bus never affects the caller."""

    if publisher is None:
        return
    try:
        publisher.publish(name, payload)
    except Exception:
        logger.warning("Publishing %s failed", name, exc_info=True)
