from gameia.platform.outbox.models import OutboxMessage
from gameia.platform.outbox.services import EventBusAdapter, enqueue

__all__ = ["OutboxMessage", "EventBusAdapter", "enqueue"]
