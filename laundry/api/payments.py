# laundry/api/payments.py

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.engine import Engine

from laundry.db.engine import get_engine
from laundry.models.payments import PaymentListItem, PaymentListResponse, PaymentRecordStatus
from laundry.services.payments import list_payments

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("/", response_model=PaymentListResponse)
def read_payments(
    status: Optional[PaymentRecordStatus] = Query(default=None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    engine: Engine = Depends(get_engine),
) -> PaymentListResponse:
    """
    Payments across all orders, newest first.
    """
    with engine.connect() as conn:
        page = list_payments(conn, status, limit, offset)

    return PaymentListResponse(
        items=[PaymentListItem(**row) for row in page["items"]],
        total=page["total"],
        limit=page["limit"],
        offset=page["offset"],
    )
