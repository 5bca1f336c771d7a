"""
Tire stock adjustments with an audit trail.

Every change to ``Tire.stock_quantity`` goes through ``apply_stock_change``:
a guarded compare-and-write (``quantity + delta >= 0``) on the tire row plus
one appended ``StockChangeLog`` row, both inside the caller's transaction.
The UPDATE takes the row lock, so concurrent adjustments of the same tire are
applied one after the other and each sees the committed quantity of the
previous one. ``adjust_stock`` is the standalone entry point that also
commits, and rolls back on any failure.
"""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import (
    InsufficientStockError,
    InvalidArgumentError,
    NotFoundError,
    StockConflictError,
    StorageError,
    TireShopError,
    UnauthorizedError,
)
from db.database import utcnow
from db.stock_change_log import StockChangeLog
from db.tire import Tire

logger = logging.getLogger(__name__)


def _validated_reason(delta, reason, actor_id: Optional[UUID]) -> str:
    if actor_id is None:
        raise UnauthorizedError()
    # bool is an int subclass but never a meaningful quantity
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise InvalidArgumentError("Change must be an integer")
    if not isinstance(reason, str) or not reason.strip():
        raise InvalidArgumentError("Reason is required")
    return reason.strip()


async def apply_stock_change(
    db: AsyncSession,
    *,
    tire_id: UUID,
    delta: int,
    reason: str,
    actor_id: Optional[UUID],
    expected_quantity: Optional[int] = None,
) -> StockChangeLog:
    """Write the new quantity and its log row without committing.

    Raises before any write when the input is invalid, the tire does not
    exist, or the result would be negative. With ``expected_quantity`` the
    write only happens if the stored quantity still equals it, otherwise
    ``StockConflictError`` is raised.
    """
    reason = _validated_reason(delta, reason, actor_id)

    conditions = [
        Tire.id == tire_id,
        Tire.is_active == True,  # noqa: E712
        Tire.stock_quantity + delta >= 0,
    ]
    if expected_quantity is not None:
        conditions.append(Tire.stock_quantity == expected_quantity)

    stmt = (
        update(Tire)
        .where(*conditions)
        .values(stock_quantity=Tire.stock_quantity + delta, updated_at=utcnow())
        .returning(Tire.stock_quantity)
        .execution_options(synchronize_session=False)
    )
    new_quantity = (await db.execute(stmt)).scalar_one_or_none()

    if new_quantity is None:
        res = await db.execute(
            select(Tire.stock_quantity).where(Tire.id == tire_id, Tire.is_active == True)  # noqa: E712
        )
        current = res.scalar_one_or_none()
        if current is None:
            raise NotFoundError("Tire not found")
        if expected_quantity is not None and current != expected_quantity:
            logger.warning(
                "Rejected stock change for tire %s: expected=%s current=%s", tire_id, expected_quantity, current
            )
            raise StockConflictError(expected=expected_quantity, current=int(current))
        logger.warning(
            "Rejected stock change for tire %s: current=%s change=%s", tire_id, current, delta
        )
        raise InsufficientStockError(current=int(current), change=delta)

    log = StockChangeLog(tire_id=tire_id, change=delta, reason=reason, user_id=actor_id)
    db.add(log)
    await db.flush()
    logger.info(
        "Stock updated for tire %s: change=%s reason=%r user=%s new_quantity=%s",
        tire_id, delta, reason, actor_id, new_quantity,
    )
    return log


async def adjust_stock(
    db: AsyncSession,
    *,
    tire_id: UUID,
    delta: int,
    reason: str,
    actor_id: Optional[UUID],
) -> Tire:
    """Apply ``delta`` to the tire's stock, log it, commit, and return the tire."""
    try:
        await apply_stock_change(db, tire_id=tire_id, delta=delta, reason=reason, actor_id=actor_id)
        await db.commit()
    except TireShopError:
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Stock update failed for tire %s", tire_id)
        raise StorageError("Failed to update stock", original_exception=e) from e

    return await db.get(Tire, tire_id, populate_existing=True)


async def list_stock_history(
    db: AsyncSession,
    *,
    tire_id: UUID,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[StockChangeLog], int]:
    """Stock changes of a tire, most recent first, with the total count."""
    exists = (await db.execute(select(Tire.id).where(Tire.id == tire_id))).scalar_one_or_none()
    if exists is None:
        raise NotFoundError("Tire not found")

    total = (
        await db.execute(select(func.count(StockChangeLog.id)).where(StockChangeLog.tire_id == tire_id))
    ).scalar_one()
    res = await db.execute(
        select(StockChangeLog)
        .where(StockChangeLog.tire_id == tire_id)
        .order_by(StockChangeLog.created_at.desc(), StockChangeLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(res.scalars().all()), int(total)
