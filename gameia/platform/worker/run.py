"""``python -m gameia.platform.worker.run [--batches N]``"""

from __future__ import annotations

import argparse
import logging
import os

from gameia import create_app
from gameia.platform.worker.config import DispatchConfig
from gameia.platform.worker.dispatcher import run_dispatcher


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Deliver staged Gameia outbox events.")
    parser.add_argument("--batches", type=int, default=None, help="stop after N polling rounds")
    parser.add_argument("--env", default=os.environ.get("APP_ENV", "development"))
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=os.environ.get("WORKER_LOGLEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    app = create_app(args.env)
    with app.app_context():
        run_dispatcher(DispatchConfig.from_env(), max_batches=args.batches)


if __name__ == "__main__":
    main()
