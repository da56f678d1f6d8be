"""Outbox delivery: claim ready rows, hand them to a sender, record the result."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from gameia.extensions import db
from gameia.platform.outbox.models import DELIVERABLE, SENT, OutboxMessage
from gameia.platform.outbox.services import EventBusAdapter
from gameia.platform.worker.config import DispatchConfig

logger = logging.getLogger(__name__)

Sender = Callable[[OutboxMessage], None]


def backoff_delay(attempts: int, config: DispatchConfig) -> float:
    """Seconds to wait after the ``attempts``-th failure (1-based)."""
    delay = config.backoff_seconds * config.backoff_multiplier ** max(attempts - 1, 0)
    return min(delay, config.max_backoff_seconds)


def claim_ready_messages(session, batch_size: int, now: Optional[datetime] = None) -> List[OutboxMessage]:
    """
    Lock up to ``batch_size`` deliverable rows, oldest first. ``SKIP LOCKED``
    lets several workers share the table on Postgres; sqlite ignores it.
    """
    rows = (
        session.query(OutboxMessage)
        .filter(
            OutboxMessage.status.in_(DELIVERABLE),
            OutboxMessage.available_at <= (now or datetime.utcnow()),
        )
        .order_by(OutboxMessage.available_at, OutboxMessage.id)
        .with_for_update(skip_locked=True)
        .limit(batch_size)
        .all()
    )
    for row in rows:
        row.claim()
    return rows


def process_ready_batch(send: Sender, config: DispatchConfig, session=None) -> int:
    """Deliver one batch and return how many rows were attempted."""
    session = session or db.session
    try:
        batch = claim_ready_messages(session, config.batch_size)
        for message in batch:
            if message.status == SENT:
                continue
            try:
                send(message)
            except Exception as exc:  # noqa: BLE001 - any sender failure is retried
                logger.warning(
                    "Delivery of %s #%s failed on attempt %s: %s",
                    message.event_type,
                    message.id,
                    message.attempts,
                    exc,
                )
                message.mark_failed(str(exc), backoff_delay(message.attempts or 1, config), config.max_attempts)
            else:
                message.mark_sent()
        session.commit()
        return len(batch)
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Outbox batch aborted by a database error")
        return 0


def run_dispatcher(
    config: Optional[DispatchConfig] = None,
    send: Optional[Sender] = None,
    max_batches: Optional[int] = None,
) -> None:
    """Poll until interrupted, or for ``max_batches`` rounds."""
    config = config or DispatchConfig.from_env()
    send = send or EventBusAdapter().dispatch
    logger.info(
        "Outbox worker up: batch=%s poll=%ss attempts=%s backoff=%ss*%s (cap %ss)",
        config.batch_size,
        config.poll_interval,
        config.max_attempts,
        config.backoff_seconds,
        config.backoff_multiplier,
        config.max_backoff_seconds,
    )
    rounds = 0
    try:
        while max_batches is None or rounds < max_batches:
            delivered = process_ready_batch(send, config)
            rounds += 1
            # Drain quickly while there is backlog.
            time.sleep(config.poll_interval if delivered == 0 else 0)
    except KeyboardInterrupt:
        logger.info("Outbox worker interrupted after %s rounds", rounds)
