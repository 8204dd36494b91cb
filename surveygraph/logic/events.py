"""Domain event constants and publisher.

Defines event type constants and a simple publish() callable used by the
structure and answer write flows as their observability hook.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Deque, Dict, List
import logging

logger = logging.getLogger(__name__)

SURVEY_CREATED = "survey.created"
SURVEY_UPDATED = "survey.updated"
SURVEY_DELETED = "survey.deleted"
STRUCTURE_REPLACED = "structure.replaced"
ANSWERS_SUBMITTED = "answers.submitted"

# Most recent domain events only; older entries fall off the left end
EVENT_BUFFER_SIZE = 1000
EVENT_BUFFER: Deque[Dict[str, Any]] = deque(maxlen=EVENT_BUFFER_SIZE)


def publish(event_type: str, payload: Dict[str, Any]) -> None:
    """Publish a domain event.

    Events are logged and kept in a bounded in-process buffer; there is no
    external broker.
    """
    logger.info("event_publish type=%s payload=%s", event_type, payload)
    EVENT_BUFFER.append({"type": event_type, "payload": dict(payload)})


def get_buffered_events(clear: bool = True) -> List[Dict[str, Any]]:
    """Return buffered domain events; optionally clear the buffer."""
    events = list(EVENT_BUFFER)
    if clear:
        EVENT_BUFFER.clear()
    return events


__all__ = [
    "SURVEY_CREATED",
    "SURVEY_UPDATED",
    "SURVEY_DELETED",
    "STRUCTURE_REPLACED",
    "ANSWERS_SUBMITTED",
    "publish",
    "get_buffered_events",
    "EVENT_BUFFER",
    "EVENT_BUFFER_SIZE",
]
