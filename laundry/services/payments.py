# laundry/services/payments.py

from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.engine import Connection

from laundry.db.schema import customers, orders, payments
from laundry.errors import NotFoundError
from laundry.models.payments import PaymentRecordStatus


def list_order_payments(conn: Connection, order_id: str) -> List[Dict[str, Any]]:
    exists = conn.execute(select(orders.c.id).where(orders.c.id == order_id)).first()
    if exists is None:
        raise NotFoundError("Order not found")

    rows = conn.execute(
        select(payments).where(payments.c.order_id == order_id).order_by(payments.c.created_at)
    ).mappings().all()
    return [dict(r) for r in rows]


def list_payments(
    conn: Connection,
    status: Optional[PaymentRecordStatus],
    limit: int,
    offset: int,
) -> Dict[str, Any]:
    conditions = []
    if status is not None:
        conditions.append(payments.c.status == status.value)

    total = conn.execute(
        select(func.count()).select_from(payments).where(*conditions)
    ).scalar_one()

    rows = conn.execute(
        select(
            payments,
            orders.c.invoice_number,
            customers.c.name.label("customer_name"),
        )
        .select_from(payments.join(orders).join(customers))
        .where(*conditions)
        .order_by(payments.c.created_at.desc())
        .limit(limit)
        .offset(offset)
    ).mappings().all()

    return {
        "items": [dict(r) for r in rows],
        "total": total,
        "limit": limit,
        "offset": offset,
    }
