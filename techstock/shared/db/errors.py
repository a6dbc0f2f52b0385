from contextlib import contextmanager
from typing import Iterator

import structlog
from sqlalchemy.exc import SQLAlchemyError

from techstock.shared.core.exceptions import DatabaseError

logger = structlog.get_logger()


@contextmanager
def translate_db_errors(action: str) -> Iterator[None]:
    """Wrap driver/ORM failures in the block as DatabaseError."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("database_operation_failed", action=action, error=str(exc))
        raise DatabaseError(f"Failed to {action}: {exc}") from exc
