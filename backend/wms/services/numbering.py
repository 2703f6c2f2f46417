from datetime import datetime
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wms.core.exceptions import ConflictError


async def generate_number(db: AsyncSession, column, prefix: str) -> str:
    """Next document number: prefix + yyyymmdd + 3 digit daily sequence"""
    date_str = datetime.now().strftime("%Y%m%d")

    pattern = f"{prefix}{date_str}%"
    result = await db.execute(
        select(func.max(column)).where(column.like(pattern))
    )
    max_no = result.scalar()

    if max_no:
        try:
            seq = int(max_no[len(prefix) + len(date_str):]) + 1
        except ValueError:
            seq = 1
    else:
        seq = 1

    return f"{prefix}{date_str}{seq:03d}"


async def flush_numbered(db: AsyncSession, column, number: str) -> None:
    """
    Flush a row that was just given ``number``.

    Two requests can read the same max() and pick the same number; the
    unique index rejects the second one, which is reported as a conflict
    the client can retry.
    """
    try:
        await db.flush()
    except IntegrityError as exc:
        if f".{column.key}" in str(exc.orig):
            raise ConflictError(
                f"Number {number} was taken by a concurrent request, please retry",
                number=number,
            ) from exc
        raise
