"""Transaction boundary shared by the workflow services"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Type

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wms.core.exceptions import StorageError, WMSError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def atomic(
    db: AsyncSession,
    action: str,
    failure: Type[StorageError] = StorageError,
) -> AsyncIterator[AsyncSession]:
    """Commit on success, roll back on any error.

    Domain errors propagate unchanged; database errors are logged and
    re-raised as ``failure``.
    """
    try:
        yield db
        await db.commit()
    except WMSError:
        await db.rollback()
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception(f"{action} failed")
        raise failure(f"{action} failed") from exc
    except Exception:
        await db.rollback()
        raise
