"""Application configuration for Gameia."""

from __future__ import annotations

import json
import os
from datetime import timedelta
from typing import Dict, Type

from dotenv import load_dotenv
from sqlalchemy.engine.url import make_url

load_dotenv()


def _engine_options_from_uri(uri: str) -> dict:
    url = make_url(uri)
    # Always keep pool_pre_ping, vary connect_args by dialect.
    if url.get_backend_name() == "sqlite":
        return {
            "pool_pre_ping": True,
            "connect_args": {"detect_types": 0, "timeout": 30},
        }
    if url.get_backend_name() in {"postgresql", "postgres"}:
        timeout = int(os.environ.get("DB_CONNECT_TIMEOUT_SECONDS", "10"))
        return {"pool_pre_ping": True, "connect_args": {"connect_timeout": timeout}}
    return {"pool_pre_ping": True}


def _flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


def _json_env(name: str, default: dict) -> dict:
    raw = os.environ.get(name)
    if not raw:
        return dict(default)
    merged = dict(default)
    merged.update(json.loads(raw))
    return merged


DEFAULT_SKILL_IMPACT_WEIGHTS = {
    "manager_feedback": 3.0,
    "test_score": 2.5,
    "peer_feedback": 2.0,
    "assessment": 2.0,
    "self_assessment": 1.0,
    "goal_completion": 1.0,
    # XP alone carries no assessment signal.
    "xp_gain": 0.0,
}

DEFAULT_PDI_PROGRESS_IMPACT = {
    "training": {"base": 25, "max": 40},
    "module": {"base": 8, "max": 15},
    "game": {"base": 5, "max": 12},
    "challenge": {"base": 15, "max": 30},
    "cognitive_test": {"base": 10, "max": 20},
}


class BaseConfig:
    """Base configuration loaded for all environments."""

    SECRET_KEY = os.environ.get("SECRET_KEY", "change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///instance/gameia.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options_from_uri(SQLALCHEMY_DATABASE_URI)
    WTF_CSRF_ENABLED = _flag("CSRF_ENABLED", "true")

    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", SECRET_KEY)
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=int(os.environ.get("JWT_ACCESS_MINUTES", "30")))

    RATELIMIT_DEFAULT = "600/hour"
    RATELIMIT_STORAGE_URI = os.environ.get("REDIS_URL", "memory://")
    RATELIMIT_ENABLED = _flag("RATELIMIT_ENABLED", "true")

    MAX_CONTENT_LENGTH = int(os.environ.get("MAX_CONTENT_LENGTH", str(1024 * 1024)))

    # Skill consolidation
    SKILL_IMPACT_WEIGHTS = _json_env("SKILL_IMPACT_WEIGHTS", DEFAULT_SKILL_IMPACT_WEIGHTS)
    SKILL_SCORE_DEFAULT_PERIOD_DAYS = int(os.environ.get("SKILL_SCORE_DEFAULT_PERIOD_DAYS", "90"))

    # Development plan auto-progress
    PDI_PROGRESS_IMPACT = _json_env("PDI_PROGRESS_IMPACT", DEFAULT_PDI_PROGRESS_IMPACT)
    PDI_DEFAULT_XP_REWARD = int(os.environ.get("PDI_DEFAULT_XP_REWARD", "100"))
    PDI_MAX_CAS_RETRIES = int(os.environ.get("PDI_MAX_CAS_RETRIES", "3"))

    # Rewards
    TIME_BONUS_FULL_RATIO = float(os.environ.get("TIME_BONUS_FULL_RATIO", "0.5"))

    # Assessment consequences
    CONSEQUENCE_TIMEOUT_SECONDS = float(os.environ.get("CONSEQUENCE_TIMEOUT_SECONDS", "2.0"))
    CONSEQUENCE_LOW_SCORE = float(os.environ.get("CONSEQUENCE_LOW_SCORE", "60"))
    CONSEQUENCE_CRITICAL_SCORE = float(os.environ.get("CONSEQUENCE_CRITICAL_SCORE", "40"))
    CONSEQUENCE_STRENGTH_SCORE = float(os.environ.get("CONSEQUENCE_STRENGTH_SCORE", "85"))
    ASSESSMENT_SUGGESTION_WINDOW_DAYS = int(os.environ.get("ASSESSMENT_SUGGESTION_WINDOW_DAYS", "14"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    ENV = "development"


class TestingConfig(BaseConfig):
    TESTING = True
    # Use file-backed SQLite so Alembic migrations and app share the same DB.
    SQLALCHEMY_DATABASE_URI = os.environ.get("TEST_DATABASE_URL", "sqlite:///instance/test.db")
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options_from_uri(SQLALCHEMY_DATABASE_URI)
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False


class ProductionConfig(BaseConfig):
    ENV = "production"


config_by_name: Dict[str, Type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    # CI pipelines set APP_ENV=ci; map to testing defaults.
    "ci": TestingConfig,
}
