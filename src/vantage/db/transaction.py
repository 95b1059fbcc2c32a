"""Single-shot transaction scope for mutation workflows."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vantage.errors.exceptions import ConflictError, VantageError

logger = logging.getLogger(__name__)

# Constraint name fragment -> message surfaced to the caller
_CONSTRAINT_MESSAGES = {
    "uq_projects_name_version": "A project with the specified name and version already exists.",
    "uq_projects_latest_name": "Another version of this project was concurrently marked as latest.",
    "uq_clone_reservations_name_version": "A project with the specified name and version already exists.",
}


def _conflict_from_integrity_error(exc: IntegrityError) -> ConflictError:
    text = str(exc.orig) if exc.orig is not None else str(exc)
    for constraint, message in _CONSTRAINT_MESSAGES.items():
        if constraint in text:
            return ConflictError(message)
    # SQLite reports the columns rather than the constraint name
    if "projects.name, projects.version_key" in text or "clone_reservations.name" in text:
        return ConflictError(_CONSTRAINT_MESSAGES["uq_projects_name_version"])
    if "projects.name" in text:
        return ConflictError(_CONSTRAINT_MESSAGES["uq_projects_latest_name"])
    return ConflictError("The change conflicts with the current state of the portfolio.")


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run the enclosed block as one transaction.

    Commits on success. On any error the transaction is rolled back before the
    error propagates, and storage-level unique violations surface as
    ``ConflictError``.
    """
    try:
        yield session
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        logger.info("Transaction rolled back on constraint violation: %s", exc.orig)
        raise _conflict_from_integrity_error(exc) from exc
    except VantageError:
        await session.rollback()
        raise
    except Exception:
        await session.rollback()
        logger.exception("Transaction rolled back on unexpected error")
        raise
