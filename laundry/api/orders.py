# laundry/api/orders.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.engine import Engine

from laundry import cache
from laundry.config import settings
from laundry.db.engine import get_engine
from laundry.models.orders import (
    OrderCreateIn,
    OrderListResponse,
    OrderOut,
    OrderStatus,
    OrderUpdateIn,
    StatusHistoryEntry,
)
from laundry.models.payments import PaymentOut
from laundry.services import orders as order_service
from laundry.services.payments import list_order_payments

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("/", response_model=OrderListResponse)
def list_orders(
    status: Optional[OrderStatus] = Query(default=None),
    customer_id: Optional[str] = Query(default=None),
    limit: int = Query(50, ge=1, le=settings.order_list_max_limit),
    offset: int = Query(0, ge=0),
    engine: Engine = Depends(get_engine),
) -> OrderListResponse:
    """
    Orders newest first, optionally filtered by status or customer.
    """
    key = cache.order_list_key(
        status=status.value if status else "",
        customer_id=customer_id or "",
        limit=limit,
        offset=offset,
    )
    read_generation = cache.generation()
    cached = cache.get_view(key)
    if cached is not None:
        return cached

    with engine.connect() as conn:
        page = order_service.list_orders(conn, status, customer_id, limit, offset)

    result = OrderListResponse(**page)
    cache.set_view(key, result, read_generation)
    return result


@router.post("/", response_model=OrderOut, status_code=201)
def create_order(payload: OrderCreateIn, engine: Engine = Depends(get_engine)) -> OrderOut:
    return OrderOut(**order_service.create_order(engine, payload))


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: str, engine: Engine = Depends(get_engine)) -> OrderOut:
    key = cache.order_detail_key(order_id)
    read_generation = cache.generation()
    cached = cache.get_view(key)
    if cached is not None:
        return cached

    with engine.connect() as conn:
        order = OrderOut(**order_service.get_order(conn, order_id))

    cache.set_view(key, order, read_generation)
    return order


@router.patch("/{order_id}", response_model=OrderOut)
def update_order(
    order_id: str,
    payload: OrderUpdateIn,
    engine: Engine = Depends(get_engine),
) -> OrderOut:
    """
    Update items, status, notes or customer and/or record a payment.

    Totals, amount due and payment status are recomputed on every call.
    """
    return OrderOut(**order_service.update_order(engine, order_id, payload))


@router.delete("/{order_id}", status_code=204)
def delete_order(order_id: str, engine: Engine = Depends(get_engine)) -> Response:
    order_service.delete_order(engine, order_id)
    return Response(status_code=204)


@router.get("/{order_id}/status-history", response_model=List[StatusHistoryEntry])
def get_status_history(order_id: str, engine: Engine = Depends(get_engine)) -> List[StatusHistoryEntry]:
    with engine.connect() as conn:
        rows = order_service.get_status_history(conn, order_id)
    return [StatusHistoryEntry(**r) for r in rows]


@router.get("/{order_id}/payments", response_model=List[PaymentOut])
def get_order_payments(order_id: str, engine: Engine = Depends(get_engine)) -> List[PaymentOut]:
    with engine.connect() as conn:
        rows = list_order_payments(conn, order_id)
    return [PaymentOut(**r) for r in rows]
