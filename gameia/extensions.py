"""Flask extensions shared by the Gameia app, workers and migrations."""

from pathlib import Path

from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

# Services read ORM attributes after commit (outcomes, DTO mapping).
db = SQLAlchemy(session_options={"expire_on_commit": False})
migrate = Migrate()
# Tokens are issued by the platform's identity service; we only verify them.
jwt = JWTManager()
# RATELIMIT_ENABLED / RATELIMIT_DEFAULT / RATELIMIT_STORAGE_URI come from app config.
limiter = Limiter(key_func=get_remote_address)


def init_extensions(app) -> None:
    db.init_app(app)
    migrate.init_app(app, db, directory=str(Path(__file__).resolve().parent / "migrations"))
    jwt.init_app(app)
    limiter.init_app(app)
