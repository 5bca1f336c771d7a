import logging
import math
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_superuser, current_staff_user
from core.config import settings
from core.errors import StorageError, TireShopError
from core.qr import render_qr_data_url, tire_qr_payload
from core.stock import adjust_stock, apply_stock_change, list_stock_history
from db.database import get_async_session
from db.stock_change_log import StockChangeLog as StockChangeLogModel
from db.tire import Tire as TireModel
from db.users import User
from schemas.tires import (
    Season,
    StockHistoryPage,
    StockUpdate,
    TireCreate,
    TireDetail,
    TirePage,
    TireQRCode,
    TireRead,
    TireUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _pagination(total: int, page: int, limit: int) -> dict:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "pages": math.ceil(total / limit) if limit else 0,
    }


async def _get_active_tire(db: AsyncSession, **where) -> TireModel:
    stmt = select(TireModel).where(TireModel.is_active == True)  # noqa: E712
    for column, value in where.items():
        stmt = stmt.where(getattr(TireModel, column) == value)
    res = await db.execute(stmt.execution_options(populate_existing=True))
    tire = res.scalar_one_or_none()
    if not tire:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tire not found")
    return tire


async def _tire_with_recent_changes(db: AsyncSession, tire: TireModel, limit: int) -> dict:
    res = await db.execute(
        select(StockChangeLogModel)
        .where(StockChangeLogModel.tire_id == tire.id)
        .order_by(StockChangeLogModel.created_at.desc(), StockChangeLogModel.id.desc())
        .limit(limit)
    )
    return {
        **tire.to_schema,
        "stock_change_logs": [log.to_schema for log in res.scalars().all()],
    }


@router.get("/", response_model=TirePage)
async def list_tires(
    brand: Optional[str] = None,
    size: Optional[str] = None,
    season: Optional[Season] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_async_session),
):
    """List active tires, newest first, with optional filters"""
    stmt = select(TireModel).where(TireModel.is_active == True)  # noqa: E712
    if brand:
        stmt = stmt.where(TireModel.brand.icontains(brand.strip(), autoescape=True))
    if size:
        stmt = stmt.where(TireModel.size.icontains(size.strip(), autoescape=True))
    if season:
        stmt = stmt.where(TireModel.season == season)

    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()
    res = await db.execute(
        stmt.order_by(TireModel.created_at.desc(), TireModel.id.desc()).offset((page - 1) * limit).limit(limit)
    )
    return {
        "items": [t.to_schema for t in res.scalars().all()],
        "pagination": _pagination(int(total), page, limit),
    }


@router.get("/qr/{qr_code_id}", response_model=TireDetail)
async def get_tire_by_qr_code(qr_code_id: str, db: AsyncSession = Depends(get_async_session)):
    """Look up a tire from a scanned QR code"""
    tire = await _get_active_tire(db, qr_code_id=qr_code_id)
    return await _tire_with_recent_changes(db, tire, settings.qr_history_preview_limit)


@router.get("/{tire_id}", response_model=TireDetail)
async def get_tire(tire_id: UUID, db: AsyncSession = Depends(get_async_session)):
    tire = await _get_active_tire(db, id=tire_id)
    return await _tire_with_recent_changes(db, tire, settings.history_preview_limit)


@router.get("/{tire_id}/qr-code", response_model=TireQRCode)
async def generate_qr_code(
    tire_id: UUID,
    user: User = Depends(current_staff_user),
    db: AsyncSession = Depends(get_async_session),
):
    tire = await _get_active_tire(db, id=tire_id)
    return {
        "qr_code": render_qr_data_url(tire_qr_payload(tire)),
        "qr_code_id": tire.qr_code_id,
        "tire_id": tire.id,
        "name": tire.name,
        "brand": tire.brand,
    }


@router.post("/", response_model=TireRead, status_code=status.HTTP_201_CREATED)
async def create_tire(
    payload: TireCreate,
    user: User = Depends(current_active_superuser),
    db: AsyncSession = Depends(get_async_session),
):
    # Stock starts at zero; the initial quantity is logged like any other change
    tire = TireModel(
        name=payload.name,
        brand=payload.brand,
        size=payload.size,
        season=payload.season,
        price=payload.price,
        image_url=str(payload.image_url) if payload.image_url else None,
        description=payload.description,
        stock_quantity=0,
    )
    try:
        db.add(tire)
        await db.flush()
        if payload.stock_quantity > 0:
            await apply_stock_change(
                db,
                tire_id=tire.id,
                delta=payload.stock_quantity,
                reason="Initial stock",
                actor_id=user.id,
            )
        await db.commit()
    except TireShopError:
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to create tire")
        raise StorageError("Failed to create tire", original_exception=e) from e

    logger.info("Tire %s created by %s", tire.id, user.id)
    tire = await _get_active_tire(db, id=tire.id)
    return tire.to_schema


@router.put("/{tire_id}", response_model=TireRead)
async def update_tire(
    tire_id: UUID,
    payload: TireUpdate,
    user: User = Depends(current_active_superuser),
    db: AsyncSession = Depends(get_async_session),
):
    tire = await _get_active_tire(db, id=tire_id)

    data = payload.model_dump(exclude_unset=True)
    new_quantity = data.pop("stock_quantity", None)
    try:
        for field in ("name", "brand", "size", "season", "price", "description"):
            if data.get(field) is not None:
                setattr(tire, field, data[field])
        if "image_url" in data:
            tire.image_url = str(data["image_url"]) if data["image_url"] else None

        # A new quantity is turned into a logged delta in the same transaction,
        # applied only if nobody changed the stock since it was read
        observed = int(tire.stock_quantity)
        if new_quantity is not None and new_quantity != observed:
            await db.flush()
            await apply_stock_change(
                db,
                tire_id=tire.id,
                delta=int(new_quantity) - observed,
                reason="Manual update",
                actor_id=user.id,
                expected_quantity=observed,
            )
        await db.commit()
    except TireShopError:
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to update tire %s", tire_id)
        raise StorageError("Failed to update tire", original_exception=e) from e

    logger.info("Tire %s updated by %s", tire_id, user.id)
    tire = await _get_active_tire(db, id=tire_id)
    return tire.to_schema


@router.delete("/{tire_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tire(
    tire_id: UUID,
    user: User = Depends(current_active_superuser),
    db: AsyncSession = Depends(get_async_session),
):
    """Soft-delete a tire; its stock history is kept"""
    tire = await _get_active_tire(db, id=tire_id)
    tire.is_active = False
    await db.commit()
    logger.info("Tire %s deleted by %s", tire_id, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{tire_id}/stock", response_model=TireRead)
async def update_stock(
    tire_id: UUID,
    payload: StockUpdate,
    user: User = Depends(current_staff_user),
    db: AsyncSession = Depends(get_async_session),
):
    tire = await adjust_stock(
        db,
        tire_id=tire_id,
        delta=payload.change,
        reason=payload.reason,
        actor_id=user.id,
    )
    return tire.to_schema


@router.get("/{tire_id}/stock-history", response_model=StockHistoryPage)
async def get_stock_history(
    tire_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(current_staff_user),
    db: AsyncSession = Depends(get_async_session),
):
    logs, total = await list_stock_history(db, tire_id=tire_id, page=page, limit=limit)
    return {
        "logs": [log.to_schema for log in logs],
        "pagination": _pagination(total, page, limit),
    }
