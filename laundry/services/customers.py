# laundry/services/customers.py

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import func, or_, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from laundry.config import settings
from laundry.db.schema import customers, orders
from laundry.db.unit_of_work import unit_of_work
from laundry.errors import ConflictError, NotFoundError, PersistenceError

logger = logging.getLogger(__name__)

CUSTOMER_COLUMNS = (
    customers.c.id,
    customers.c.name,
    customers.c.email,
    customers.c.phone,
    customers.c.address,
    customers.c.created_at,
)


def _now() -> datetime:
    return datetime.now(ZoneInfo(settings.app_timezone))


def is_email_taken(conn: Connection, email: Optional[str], exclude_customer_id: Optional[str] = None) -> bool:
    if not email:
        return False
    stmt = (
        select(func.count())
        .select_from(customers)
        .where(func.lower(customers.c.email) == func.lower(email))
    )
    if exclude_customer_id is not None:
        stmt = stmt.where(customers.c.id != exclude_customer_id)
    return conn.execute(stmt).scalar_one() > 0


def insert_customer(conn: Connection, data: Any) -> Dict[str, Any]:
    """
    Insert a customer on an open connection and return the stored row.

    ``data`` is any object with name/email/phone/address attributes
    (``CustomerIn`` or the customer reference of an order update).
    """
    email = str(data.email) if data.email else None
    if is_email_taken(conn, email):
        raise ConflictError("A customer with this email address already exists")

    now = _now()
    row = {
        "id": str(uuid.uuid4()),
        "name": data.name.strip(),
        "email": email,
        "phone": data.phone,
        "address": data.address,
        "created_at": now,
        "updated_at": now,
    }
    conn.execute(customers.insert().values(**row))
    logger.info("Created customer %s (%s)", row["id"], row["name"])
    return row


def create_customer(engine: Engine, data: Any) -> Dict[str, Any]:
    try:
        with unit_of_work(engine) as conn:
            return insert_customer(conn, data)
    except SQLAlchemyError:
        logger.exception("Error creating customer")
        raise PersistenceError("Failed to create customer. Please try again.")


def get_customer(conn: Connection, customer_id: str) -> Dict[str, Any]:
    row = conn.execute(
        select(*CUSTOMER_COLUMNS).where(customers.c.id == customer_id)
    ).mappings().first()
    if row is None:
        raise NotFoundError("Customer not found")
    return dict(row)


def get_customer_detail(conn: Connection, customer_id: str) -> Dict[str, Any]:
    customer = get_customer(conn, customer_id)

    stats = conn.execute(
        select(
            func.count(orders.c.id).label("total_orders"),
            func.coalesce(func.sum(orders.c.total_amount), 0).label("total_spent"),
            func.coalesce(func.sum(orders.c.amount_paid), 0).label("amount_paid"),
            func.coalesce(func.sum(orders.c.amount_due), 0).label("amount_to_pay"),
        ).where(orders.c.customer_id == customer_id)
    ).first()

    customer.update(
        total_orders=stats.total_orders or 0,
        total_spent=Decimal(stats.total_spent or 0),
        amount_paid=Decimal(stats.amount_paid or 0),
        amount_to_pay=Decimal(stats.amount_to_pay or 0),
    )
    return customer


def list_customers(conn: Connection, q: Optional[str], limit: int, offset: int) -> Dict[str, Any]:
    conditions = []
    if q:
        like = f"%{q.lower()}%"
        conditions.append(
            or_(
                func.lower(customers.c.name).like(like),
                func.lower(customers.c.email).like(like),
                customers.c.phone.like(f"%{q}%"),
            )
        )

    total = conn.execute(
        select(func.count()).select_from(customers).where(*conditions)
    ).scalar_one()

    rows = conn.execute(
        select(*CUSTOMER_COLUMNS)
        .where(*conditions)
        .order_by(customers.c.name)
        .limit(limit)
        .offset(offset)
    ).mappings().all()

    return {
        "items": [dict(r) for r in rows],
        "total": total,
        "limit": limit,
        "offset": offset,
    }
