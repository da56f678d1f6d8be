from gameia.platform.worker.config import DispatchConfig
from gameia.platform.worker.dispatcher import backoff_delay, claim_ready_messages, process_ready_batch, run_dispatcher

__all__ = ["DispatchConfig", "backoff_delay", "claim_ready_messages", "process_ready_batch", "run_dispatcher"]
