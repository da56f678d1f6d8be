"""Alembic environment.

The database URL always comes from the Gameia config selected by the
``gameia_env`` main option (``flask db`` passes the running app's config), so
migrations and the app can never point at different databases.
"""

from __future__ import annotations

import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import engine_from_config, pool

sys.path.append(str(Path(__file__).resolve().parents[2]))

from gameia import create_app  # noqa: E402
from gameia.core.events import event_models  # noqa: E402,F401
from gameia.domains.activity.models import activity_models  # noqa: E402,F401
from gameia.domains.assessments.models import assessment_models  # noqa: E402,F401
from gameia.domains.pdi.models import pdi_models  # noqa: E402,F401
from gameia.domains.rewards.models import reward_models  # noqa: E402,F401
from gameia.domains.skills.models import skill_impact  # noqa: E402,F401
from gameia.extensions import db  # noqa: E402
from gameia.platform.outbox import models as outbox_models  # noqa: E402,F401

config = context.config
if config.config_file_name and Path(config.config_file_name).exists():
    fileConfig(config.config_file_name, disable_existing_loggers=False)


def _database_url() -> str:
    app = create_app(config.get_main_option("gameia_env", "development"))
    return app.config["SQLALCHEMY_DATABASE_URI"]


def run_offline() -> None:
    context.configure(
        url=_database_url(),
        target_metadata=db.metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    section = dict(config.get_section(config.config_ini_section) or {})
    section["sqlalchemy.url"] = _database_url()
    engine = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with engine.connect() as connection:
        # ALTERs on sqlite need table rebuilds.
        context.configure(
            connection=connection,
            target_metadata=db.metadata,
            render_as_batch=connection.dialect.name == "sqlite",
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
