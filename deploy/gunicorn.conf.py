"""
Gunicorn settings for the Gameia API.

Everything is read from the environment so the same file serves the API
container and local runs: ``gunicorn -c deploy/gunicorn.conf.py``.
"""

from __future__ import annotations

import logging
import multiprocessing
import os

logger = logging.getLogger("gameia.gunicorn")


def _int_env(name: str, default: int) -> int:
    return int(os.environ.get(name, str(default)))


wsgi_app = os.environ.get("GUNICORN_APP", "gameia.wsgi:app")
bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:8000")
backlog = _int_env("GUNICORN_BACKLOG", 2048)

# Requests are short and I/O bound (one DB transaction each), so threads per worker.
worker_class = os.environ.get("GUNICORN_WORKER_CLASS", "gthread")
workers = _int_env("GUNICORN_WORKERS", multiprocessing.cpu_count() * 2 + 1)
threads = _int_env("GUNICORN_THREADS", 4)
max_requests = _int_env("GUNICORN_MAX_REQUESTS", 10000)
max_requests_jitter = _int_env("GUNICORN_MAX_REQUESTS_JITTER", 1000)
worker_tmp_dir = os.environ.get("GUNICORN_WORKER_TMP_DIR", "/dev/shm")
preload_app = os.environ.get("GUNICORN_PRELOAD", "false").lower() in ("1", "true", "yes")

timeout = _int_env("GUNICORN_TIMEOUT", 30)
graceful_timeout = _int_env("GUNICORN_GRACEFUL_TIMEOUT", 20)
keepalive = _int_env("GUNICORN_KEEPALIVE", 5)

accesslog = os.environ.get("GUNICORN_ACCESSLOG", "-")
errorlog = os.environ.get("GUNICORN_ERRORLOG", "-")
loglevel = os.environ.get("GUNICORN_LOGLEVEL", "info")
capture_output = True
access_log_format = os.environ.get(
    "GUNICORN_ACCESS_LOG_FORMAT",
    '{"timestamp": "%(t)s", "remote": "%(h)s", "request": "%(r)s", '
    '"status": %(s)s, "bytes": %(b)s, "response_time_us": %(D)s, "pid": %(p)s}',
)

# Activity payloads are small JSON bodies.
limit_request_line = _int_env("GUNICORN_LIMIT_REQUEST_LINE", 4094)
limit_request_fields = _int_env("GUNICORN_LIMIT_REQUEST_FIELDS", 100)
limit_request_field_size = _int_env("GUNICORN_LIMIT_REQUEST_FIELD_SIZE", 8190)
forwarded_allow_ips = os.environ.get("GUNICORN_FORWARDED_ALLOW_IPS", "127.0.0.1")

statsd_host = os.environ.get("STATSD_HOST")
if statsd_host:
    statsd_prefix = os.environ.get("STATSD_PREFIX", "gameia")

proc_name = os.environ.get("GUNICORN_PROC_NAME", "gameia")


def when_ready(server):
    logger.info(
        "Gameia API ready on %s (workers=%s threads=%s class=%s)",
        bind,
        workers,
        threads,
        worker_class,
    )


def post_fork(server, worker):
    """Drop pooled connections inherited from a preloaded master."""
    if not preload_app:
        return
    from gameia.extensions import db
    from gameia.wsgi import app

    with app.app_context():
        db.engine.dispose()


def worker_abort(worker):
    logger.warning("Worker %s exceeded %ss and was aborted", worker.pid, timeout)
