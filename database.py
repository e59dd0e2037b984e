import os
import logging
import threading
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

load_dotenv()

Base = declarative_base()

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None
_lock = threading.Lock()


def _engine_options(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        # In-memory databases only live as long as their single connection
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
        return options

    options = {
        "poolclass": QueuePool,
        "pool_size": 5,                 # Number of connections to maintain
        "max_overflow": 10,             # Additional connections beyond pool_size
        "pool_pre_ping": True,          # Validate connections before use
        "pool_recycle": 3600,           # Recycle connections every hour
    }
    if database_url.startswith(("postgresql", "postgres")):
        options["connect_args"] = {"connect_timeout": 30}
    return options


def is_connected() -> bool:
    return _engine is not None


def connect_db(database_url: Optional[str] = None) -> Engine:
    """
    Return the process-wide engine, creating it (and the tables) on first use.

    Later calls are no-ops that hand back the existing engine, whatever URL
    they pass.
    """
    global _engine, _session_factory

    if _engine is not None:
        return _engine

    with _lock:
        if _engine is None:
            url = database_url or os.getenv("DATABASE_URL")
            if not url:
                raise RuntimeError("Please define DATABASE_URL")

            engine = create_engine(url, **_engine_options(url))

            # Models must be registered on Base before the tables are created
            import models  # noqa: F401
            Base.metadata.create_all(bind=engine)

            _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
            _engine = engine
            logger.info(f"Database engine ready ({engine.url.get_backend_name()})")

    return _engine


def dispose_db() -> None:
    """Close pooled connections and forget the engine."""
    global _engine, _session_factory

    with _lock:
        if _engine is not None:
            _engine.dispose()
        _engine = None
        _session_factory = None


def get_db():
    """
    Get database session with proper error handling.
    """
    connect_db()
    db = _session_factory()
    try:
        yield db
    except SQLAlchemyError as e:
        logger.error(f"Database session error: {e}")
        db.rollback()
        raise
    finally:
        db.close()
