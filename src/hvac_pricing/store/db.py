"""
Database session management with SQLAlchemy.

The relational store is an external collaborator; this module only builds
engines and sessions with a bounded timeout and maps driver failures to
StoreUnavailable.
"""
from contextlib import contextmanager
from functools import wraps
from pathlib import Path
from typing import Generator, Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool

from ..config.settings import Settings, get_settings
from ..config.logging import get_logger
from ..engine.errors import StoreUnavailable

logger = get_logger(__name__)

Base = declarative_base()


def build_engine(settings: Optional[Settings] = None, url: Optional[str] = None) -> Engine:
    """
    Create an engine honouring the store timeout.

    In-memory SQLite URLs share one connection (StaticPool) so every session
    in the process sees the same database.
    """
    settings = settings or get_settings()
    url = url or settings.database_url
    timeout = settings.store_timeout

    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False, "timeout": timeout}}
        if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_timeout=timeout,
        pool_recycle=1800,
        connect_args={"connect_timeout": int(max(1, timeout))},
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


def alembic_config() -> Config:
    """Alembic configuration pointing at the bundled migration scripts."""
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_DIR))
    return config


def init_db(engine: Engine):
    """Bring the schema up to the latest migration."""
    config = alembic_config()
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, "head")
    logger.info("Database schema ready at revision head")


_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine() -> Engine:
    """Process-wide engine built from settings."""
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine


def get_session_factory() -> sessionmaker:
    """Process-wide session factory bound to get_engine()."""
    global _session_factory
    if _session_factory is None:
        _session_factory = build_session_factory(get_engine())
    return _session_factory


def get_db() -> Generator[Session, None, None]:
    """Dependency for getting database session."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope(factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """Context manager for database session."""
    db = (factory or get_session_factory())()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def store_call(func):
    """Translate driver-level failures into StoreUnavailable."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except IntegrityError:
            raise
        except (OperationalError, DBAPIError) as e:
            logger.warning("Store call %s failed: %s", func.__qualname__, e)
            raise StoreUnavailable(f"Relational store unavailable: {e.orig if e.orig else e}") from e
    return wrapper
