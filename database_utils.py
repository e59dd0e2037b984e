import logging
from functools import wraps
from typing import Callable, Any

from sqlalchemy.exc import OperationalError, DisconnectionError, SQLAlchemyError
from sqlalchemy.orm import Session

from errors import UpstreamError

logger = logging.getLogger(__name__)

CONNECTION_ERROR_KEYWORDS = [
    'ssl connection has been closed',
    'connection closed',
    'server closed the connection',
    'connection timeout',
    'connection refused',
    'connection lost',
    'server has gone away'
]


def is_connection_error(error: Exception) -> bool:
    """
    Check if an error is a database connection error.
    """
    if not isinstance(error, (OperationalError, DisconnectionError)):
        return False

    error_msg = str(error).lower()
    return any(keyword in error_msg for keyword in CONNECTION_ERROR_KEYWORDS)


def translate_db_errors(func: Callable) -> Callable:
    """
    Decorator for store operations taking the session as first argument.

    Rolls the session back on any SQLAlchemy error and re-raises it as an
    UpstreamError. Nothing is retried.
    """

    @wraps(func)
    def wrapper(db: Session, *args, **kwargs) -> Any:
        try:
            return func(db, *args, **kwargs)
        except SQLAlchemyError as e:
            try:
                db.rollback()
            except SQLAlchemyError as rollback_error:
                logger.warning(f"Rollback after failed {func.__name__} also failed: {rollback_error}")

            if is_connection_error(e):
                logger.error(f"Database connection lost during {func.__name__}: {e}")
                raise UpstreamError("Database temporarily unavailable") from e

            logger.error(f"Database operation {func.__name__} failed: {e}")
            raise UpstreamError("Database error") from e

    return wrapper
