import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from dotenv import dotenv_values, load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from sems_cli.models import Base

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "database.properties"
DEFAULT_DATABASE_URL = "sqlite:///sems.db"

TIMEOUT_SECONDS = 30


@dataclass
class DatabaseConfig:
    url: str
    username: Optional[str] = None
    password: Optional[str] = None


def load_database_config(path: Optional[str] = None) -> DatabaseConfig:
    """
    Read database settings from a key/value properties file.

    The file holds ``url``, ``username`` and ``password`` lines. Environment
    variables ``SEMS_DATABASE_URL``, ``SEMS_DATABASE_USERNAME`` and
    ``SEMS_DATABASE_PASSWORD`` take precedence over the file.

    Args:
        path: Properties file to read, defaults to ``SEMS_CONFIG`` or
            ``database.properties`` in the working directory

    Returns:
        DatabaseConfig with the resolved values
    """
    path = path or os.getenv("SEMS_CONFIG", DEFAULT_CONFIG_FILE)
    values = dotenv_values(path) if os.path.exists(path) else {}

    url = os.getenv("SEMS_DATABASE_URL") or values.get("url") or DEFAULT_DATABASE_URL
    username = os.getenv("SEMS_DATABASE_USERNAME") or values.get("username") or None
    password = os.getenv("SEMS_DATABASE_PASSWORD") or values.get("password") or None

    return DatabaseConfig(url=url, username=username, password=password)


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    """SQLite ignores foreign keys, and so cascades, unless asked per connection."""

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_engine(config: Optional[DatabaseConfig] = None) -> Engine:
    config = config or load_database_config()
    url = make_url(config.url)
    if config.username:
        url = url.set(username=config.username)
    if config.password:
        url = url.set(password=config.password)

    if url.get_backend_name() == "sqlite":
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": TIMEOUT_SECONDS},
            echo=False,
            pool_pre_ping=True,
        )
        _enable_sqlite_foreign_keys(engine)
    else:
        engine = create_engine(
            url,
            echo=False,
            pool_pre_ping=True,
            pool_size=5,
            max_overflow=10,
        )

    logger.debug(f"Database engine created for {url.render_as_string(hide_password=True)}")
    return engine


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(engine)
    logger.info("Database schema created")


def get_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope(engine: Optional[Engine] = None) -> Iterator[Session]:
    """Yield a session bound to a pooled connection and always release it."""
    SessionLocal = get_session_factory(engine or get_engine())
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
