import sys
import uuid
from pathlib import Path

import os

import pytest
from sqlalchemy.orm import scoped_session, sessionmaker
from alembic import command
from alembic.config import Config as AlembicConfig
from flask_jwt_extended import create_access_token

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from gameia import create_app
from gameia.extensions import db
from gameia.core.events import event_models
from gameia.platform.outbox import models as outbox_models
from gameia.domains.activity.models import activity_models
from gameia.domains.skills.models import skill_impact
from gameia.domains.rewards.models import reward_models
from gameia.domains.pdi.models import pdi_models
from gameia.domains.assessments.models import assessment_models


# ==================== Pytest Markers ====================
def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (database, API)")
    config.addinivalue_line("markers", "slow: Slow running tests")
    config.addinivalue_line("markers", "smoke: Quick smoke tests for CI")


def _alembic_config() -> AlembicConfig:
    cfg = AlembicConfig()
    cfg.set_main_option("script_location", str(ROOT / "gameia" / "migrations"))
    cfg.set_main_option("gameia_env", "testing")
    db_url = os.environ.get("TEST_DATABASE_URL") or "sqlite:///instance/test.db"
    cfg.set_main_option("sqlalchemy.url", db_url)
    return cfg


@pytest.fixture(scope="session", autouse=True)
def migrated_db():
    """Apply migrations once per session to mirror production schema."""
    cfg = _alembic_config()
    command.upgrade(cfg, "head")
    yield
    try:
        command.downgrade(cfg, "base")
    except Exception:
        # Downgrade is optional for local/CI runs; ignore failures to avoid hiding test results.
        pass


@pytest.fixture()
def app(migrated_db):
    """
    Create a per-test app bound to one connection and outer transaction.

    Service-level commits only release a savepoint. On SQLite releasing the
    outermost savepoint is durable, so tests use fresh user ids instead of
    relying on rollback for isolation.
    """
    app = create_app("testing")
    ctx = app.app_context()
    ctx.push()

    connection = db.engine.connect()
    transaction = connection.begin()

    session_factory = scoped_session(
        sessionmaker(bind=connection, join_transaction_mode="create_savepoint")
    )
    db.session = session_factory

    try:
        yield app
    finally:
        session_factory.remove()
        transaction.rollback()
        connection.close()
        ctx.pop()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def user_id():
    return f"user-{uuid.uuid4().hex[:12]}"


@pytest.fixture()
def org_id():
    return f"org-{uuid.uuid4().hex[:8]}"


@pytest.fixture()
def make_headers(app):
    """JWT headers for API calls; ``roles`` lands in the token claims."""

    def _make(user: str, org: str | None = None, roles: list[str] | None = None) -> dict:
        claims = {"roles": roles or []}
        if org:
            claims["org_id"] = org
        with app.app_context():
            token = create_access_token(identity=user, additional_claims=claims)
        return {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}

    return _make


@pytest.fixture()
def auth_headers(make_headers, user_id, org_id):
    return make_headers(user_id, org_id)
