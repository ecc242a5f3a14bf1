"""Engine and session factory for the story store."""

import logging
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import Config
from .models import Base

logger = logging.getLogger(__name__)

_ALEMBIC_INI = Path(__file__).resolve().parents[2] / "alembic.ini"

_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def get_database_url() -> str:
    return Config.get_database_url()


def _is_memory(url: str) -> bool:
    return url.startswith("sqlite") and ":memory:" in url


def _sqlite_foreign_keys(dbapi_connection, _record):
    # SQLite ignores REFERENCES/ON DELETE unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _build_engine(url: str) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(url, pool_size=5, max_overflow=10, pool_pre_ping=True, echo=Config.DEBUG)

    options = {"connect_args": {"check_same_thread": False}, "echo": Config.DEBUG}
    if _is_memory(url):
        # Every session must share the single connection that holds the data
        options["poolclass"] = StaticPool
    engine = create_engine(url, **options)
    event.listen(engine, "connect", _sqlite_foreign_keys)
    return engine


def get_engine() -> Engine:
    """The process-wide engine, built on first use from DATABASE_URL."""
    global _engine
    if _engine is None:
        _engine = _build_engine(get_database_url())
    return _engine


def get_session_factory() -> sessionmaker:
    """Session factory handed to each StateManager.

    ``expire_on_commit=False`` keeps rows loaded by a turn usable after
    the many small commits it makes.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)
    return _session_factory


def reset_engine():
    """Dispose the engine so the next call re-reads DATABASE_URL."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


def init_db():
    """Bring the schema up to date.

    File and server databases are migrated with Alembic. In-memory SQLite
    gets ``create_all`` instead, since Alembic would migrate a connection
    of its own whose tables disappear with it.
    """
    url = get_database_url()
    if _is_memory(url) or not _ALEMBIC_INI.is_file():
        Base.metadata.create_all(bind=get_engine())
        logger.info(f"Schema created directly for {url}")
        return

    from alembic import command
    from alembic.config import Config as AlembicConfig

    alembic_cfg = AlembicConfig(str(_ALEMBIC_INI))
    alembic_cfg.set_main_option("script_location", str(_ALEMBIC_INI.parent / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", url)
    command.upgrade(alembic_cfg, "head")
    logger.info(f"Schema migrated to head for {url}")
