"""Staging helpers and the in-process delivery target for the outbox."""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import datetime
from typing import Any, Mapping, Optional

from gameia.core.events.event_bus import EventBus, event_bus
from gameia.core.events.event_models import CoreEvent
from gameia.extensions import db
from gameia.platform.outbox.models import PENDING, OutboxMessage

logger = logging.getLogger(__name__)

SEEN_LIMIT = 10_000


def enqueue(
    event_name: str,
    payload: Optional[Mapping[str, Any]],
    user_id: Optional[str] = None,
    organization_id: Optional[str] = None,
    available_at: Optional[datetime] = None,
) -> OutboxMessage:
    """
    Add an outbox row to the current session. Nothing is flushed or committed
    here: the row lands with the caller's domain write or not at all.
    """
    message = OutboxMessage(
        event_type=event_name,
        payload=dict(payload or {}),
        user_id=user_id,
        organization_id=organization_id,
        available_at=available_at or datetime.utcnow(),
        status=PENDING,
        attempts=0,
    )
    db.session.add(message)
    logger.debug("Staged %s for user=%s", event_name, user_id)
    return message


class EventBusAdapter:
    """
    Deliver outbox rows to an :class:`EventBus` as transient ``CoreEvent``
    objects. A row already delivered by this adapter is skipped, so a worker
    that crashes between publish and commit does not fan out twice in-process.
    Only the last ``seen_limit`` ids are remembered; rows marked sent are never
    claimed again, so older ids need no tracking.
    """

    def __init__(self, bus: Optional[EventBus] = None, seen_limit: int = SEEN_LIMIT) -> None:
        self.bus = bus or event_bus
        self.seen_limit = seen_limit
        self._seen: OrderedDict[int, None] = OrderedDict()

    def dispatch(self, message: OutboxMessage) -> None:
        if message.id in self._seen:
            return
        payload = {**(message.payload or {}), "external_id": message.external_id, "event_id": message.id}
        event = CoreEvent(
            event_type=message.event_type,
            payload=payload,
            user_id=message.user_id,
            organization_id=message.organization_id,
        )
        event.id = message.id
        event.created_at = message.created_at
        self.bus.publish(event)
        self._seen[message.id] = None
        if len(self._seen) > self.seen_limit:
            self._seen.popitem(last=False)
