# laundry/services/orders.py
"""
Order persistence: loading, creating, updating with payment reconciliation,
listing and deleting.

An update runs in three steps. The loader reads the order with its items and
payments (NotFoundError if it does not exist, before anything is written),
``reconcile`` works out the new totals without touching the database, and
the writer applies the order row, item replacement and new payment inside a
single unit of work. Cached order views are dropped only after the commit.
"""

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from laundry import cache
from laundry.config import settings
from laundry.db.schema import (
    branches,
    customers,
    invoice_settings,
    laundry_categories,
    order_items,
    order_status_history,
    orders,
    payments,
    service_types,
)
from laundry.db.unit_of_work import unit_of_work
from laundry.errors import ConflictError, NotFoundError, OrderValidationError, PersistenceError
from laundry.models.orders import OrderCreateIn, OrderItemIn, OrderStatus, OrderUpdateIn
from laundry.models.payments import PaymentRecordStatus
from laundry.services.customers import insert_customer
from laundry.services.reconciliation import (
    ItemsUpdate,
    NewPayment,
    OrderSnapshot,
    Reconciliation,
    derive_payment_status,
    items_total,
    reconcile,
    resolve_update_intent,
)

logger = logging.getLogger(__name__)

INVOICE_PREFIX = "INV-"
INVOICE_COUNTER_DIGITS = 6
DEFAULT_INVOICE_SETTINGS_ID = "default"


def _now() -> datetime:
    return datetime.now(ZoneInfo(settings.app_timezone))


# ---- Loader ----

def load_order(conn: Connection, order_id: str) -> OrderSnapshot:
    row = conn.execute(
        select(
            orders.c.id,
            orders.c.customer_id,
            orders.c.notes,
            orders.c.total_amount,
            orders.c.discount,
            orders.c.status,
            orders.c.version,
        ).where(orders.c.id == order_id)
    ).mappings().first()

    if row is None:
        raise NotFoundError("Order not found")

    item_rows = conn.execute(
        select(order_items).where(order_items.c.order_id == order_id).order_by(order_items.c.id)
    ).mappings().all()
    payment_rows = conn.execute(
        select(payments).where(payments.c.order_id == order_id).order_by(payments.c.created_at)
    ).mappings().all()

    return OrderSnapshot(
        id=row["id"],
        customer_id=row["customer_id"],
        notes=row["notes"],
        total_amount=Decimal(row["total_amount"]),
        discount=Decimal(row["discount"]),
        status=OrderStatus(row["status"]),
        version=row["version"],
        items=tuple(dict(r) for r in item_rows),
        payments=tuple(dict(r) for r in payment_rows),
    )


def check_item_references(conn: Connection, items: Iterable[OrderItemIn]) -> None:
    items = list(items)
    if not items:
        return

    wanted_types = {item.service_type_id for item in items}
    found_types = set(
        conn.execute(
            select(service_types.c.id).where(service_types.c.id.in_(wanted_types))
        ).scalars()
    )
    missing = sorted(wanted_types - found_types)
    if missing:
        raise OrderValidationError(f"Unknown service type: {', '.join(missing)}")

    wanted_categories = {item.category_id for item in items if item.category_id}
    if wanted_categories:
        found_categories = set(
            conn.execute(
                select(laundry_categories.c.id).where(laundry_categories.c.id.in_(wanted_categories))
            ).scalars()
        )
        missing = sorted(wanted_categories - found_categories)
        if missing:
            raise OrderValidationError(f"Unknown laundry category: {', '.join(missing)}")


def check_customer_exists(conn: Connection, customer_id: str) -> None:
    found = conn.execute(select(customers.c.id).where(customers.c.id == customer_id)).first()
    if found is None:
        raise NotFoundError("Customer not found")


# ---- Writer helpers ----

def _item_rows(order_id: str, items: Iterable[OrderItemIn]) -> List[Dict[str, Any]]:
    return [
        {
            "order_id": order_id,
            "service_type_id": item.service_type_id,
            "category_id": item.category_id or None,
            "quantity": item.quantity,
            "price": item.unit_amount,
            "subtotal": item.line_total,
            "notes": item.notes or None,
            "size": item.size or None,
        }
        for item in items
    ]


def _insert_payment(conn: Connection, order_id: str, payment: NewPayment) -> None:
    conn.execute(
        payments.insert().values(
            id=str(uuid.uuid4()),
            order_id=order_id,
            amount=payment.amount,
            payment_method=payment.method.value,
            transaction_id=payment.transaction_id,
            status=PaymentRecordStatus.PAID.value,
            created_at=_now(),
        )
    )


def _record_status_change(
    conn: Connection, order_id: str, from_status: Optional[OrderStatus], to_status: OrderStatus
) -> None:
    conn.execute(
        order_status_history.insert().values(
            order_id=order_id,
            from_status=from_status.value if from_status else None,
            to_status=to_status.value,
            changed_at=_now(),
        )
    )


def write_reconciliation(conn: Connection, snapshot: OrderSnapshot, result: Reconciliation) -> None:
    customer_id = result.customer_id
    if result.new_customer is not None:
        customer_id = insert_customer(conn, result.new_customer)["id"]

    updated = conn.execute(
        orders.update()
        .where(orders.c.id == snapshot.id)
        .where(orders.c.version == snapshot.version)
        .values(
            customer_id=customer_id,
            notes=result.notes,
            total_amount=result.total_amount,
            amount_paid=result.amount_paid,
            amount_due=result.amount_due,
            discount=result.discount,
            status=result.status.value,
            payment_status=result.payment_status.value,
            version=snapshot.version + 1,
            updated_at=_now(),
        )
    )
    if updated.rowcount == 0:
        raise ConflictError("Order was changed by another request. Reload it and try again.")

    if result.replacement_items is not None:
        conn.execute(order_items.delete().where(order_items.c.order_id == snapshot.id))
        rows = _item_rows(snapshot.id, result.replacement_items)
        if rows:
            conn.execute(order_items.insert(), rows)

    if result.new_payment is not None:
        _insert_payment(conn, snapshot.id, result.new_payment)

    if result.status_changed:
        _record_status_change(conn, snapshot.id, result.previous_status, result.status)


# ---- Operations ----

def update_order(
    engine: Engine,
    order_id: str,
    payload: Union[OrderUpdateIn, Mapping[str, Any]],
) -> Dict[str, Any]:
    intent = resolve_update_intent(payload)

    with engine.connect() as conn:
        snapshot = load_order(conn, order_id)
        if isinstance(intent, ItemsUpdate):
            check_item_references(conn, intent.items)
        if intent.customer is not None and intent.customer.id:
            check_customer_exists(conn, intent.customer.id)

    result = reconcile(snapshot, intent)
    if result.new_payment is None and intent.payment is not None and intent.payment.amount > 0:
        logger.warning(
            "Order %s: payment of %s has no payment method; counted in amount paid without a payment record",
            order_id,
            intent.payment.amount,
        )

    try:
        with unit_of_work(engine) as conn:
            write_reconciliation(conn, snapshot, result)
    except SQLAlchemyError:
        logger.exception("Error updating order %s", order_id)
        raise PersistenceError("Failed to update order")

    logger.info(
        "Updated order %s: total=%s paid=%s due=%s payment_status=%s",
        order_id,
        result.total_amount,
        result.amount_paid,
        result.amount_due,
        result.payment_status.value,
    )
    cache.invalidate_order_views(order_id)

    with engine.connect() as conn:
        return get_order(conn, order_id)


def _invoice_settings_row(conn: Connection) -> Mapping[str, Any]:
    row = conn.execute(
        select(invoice_settings).where(invoice_settings.c.id == DEFAULT_INVOICE_SETTINGS_ID)
    ).mappings().first()
    if row is None:
        defaults = {
            "id": DEFAULT_INVOICE_SETTINGS_ID,
            "prefix": INVOICE_PREFIX,
            "counter_digits": INVOICE_COUNTER_DIGITS,
            "current_counter": 1,
        }
        conn.execute(invoice_settings.insert().values(**defaults))
        row = defaults
    return row


def next_invoice_number(conn: Connection) -> str:
    """
    Hand out the next sequential invoice number and advance the stored counter.

    Must run inside the unit of work that inserts the order, so a rolled back
    create does not consume a number.
    """
    settings_row = _invoice_settings_row(conn)
    counter = settings_row["current_counter"]
    conn.execute(
        invoice_settings.update()
        .where(invoice_settings.c.id == settings_row["id"])
        .values(current_counter=counter + 1)
    )
    return f"{settings_row['prefix']}{counter:0{settings_row['counter_digits']}d}"


def _invoice_number_taken(conn: Connection, invoice_number: str) -> bool:
    return conn.execute(
        select(func.count()).select_from(orders).where(orders.c.invoice_number == invoice_number)
    ).scalar_one() > 0


def create_order(engine: Engine, data: OrderCreateIn) -> Dict[str, Any]:
    with engine.connect() as conn:
        check_customer_exists(conn, data.customer_id)

        if data.branch_id:
            found = conn.execute(
                select(branches.c.id).where(branches.c.id == data.branch_id)
            ).first()
            if found is None:
                raise NotFoundError("Branch not found")

        check_item_references(conn, data.items)

    total_amount = items_total(data.items, data.discount)
    amount_paid = data.amount_paid
    amount_due = total_amount - amount_paid
    now = _now()
    order_id = str(uuid.uuid4())

    try:
        with unit_of_work(engine) as conn:
            if data.custom_invoice_number:
                invoice_number = data.custom_invoice_number
                if _invoice_number_taken(conn, invoice_number):
                    raise ConflictError(f"Invoice number {invoice_number} is already in use")
            else:
                # Step over numbers an earlier custom invoice already claimed
                invoice_number = next_invoice_number(conn)
                while _invoice_number_taken(conn, invoice_number):
                    invoice_number = next_invoice_number(conn)

            conn.execute(
                orders.insert().values(
                    id=order_id,
                    invoice_number=invoice_number,
                    customer_id=data.customer_id,
                    branch_id=data.branch_id,
                    notes=data.notes or "",
                    total_amount=total_amount,
                    amount_paid=amount_paid,
                    amount_due=amount_due,
                    discount=data.discount,
                    status=OrderStatus.PENDING.value,
                    payment_status=derive_payment_status(total_amount, amount_due).value,
                    order_date=data.order_date or now,
                    expected_delivery_date=data.expected_delivery_date,
                    version=1,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.execute(order_items.insert(), _item_rows(order_id, data.items))

            if amount_paid > 0:
                _insert_payment(conn, order_id, NewPayment(amount=amount_paid, method=data.payment_method))

            _record_status_change(conn, order_id, None, OrderStatus.PENDING)
    except SQLAlchemyError:
        logger.exception("Error creating order")
        raise PersistenceError("Failed to create order. Please try again.")

    logger.info("Created order %s (%s) total=%s", order_id, invoice_number, total_amount)
    cache.invalidate_order_views(order_id)

    with engine.connect() as conn:
        return get_order(conn, order_id)


def delete_order(engine: Engine, order_id: str) -> None:
    with engine.connect() as conn:
        load_order(conn, order_id)

    try:
        with unit_of_work(engine) as conn:
            conn.execute(order_status_history.delete().where(order_status_history.c.order_id == order_id))
            conn.execute(payments.delete().where(payments.c.order_id == order_id))
            conn.execute(order_items.delete().where(order_items.c.order_id == order_id))
            conn.execute(orders.delete().where(orders.c.id == order_id))
    except SQLAlchemyError:
        logger.exception("Error deleting order %s", order_id)
        raise PersistenceError("Failed to delete order. Please try again.")

    logger.info("Deleted order %s", order_id)
    cache.invalidate_order_views(order_id)


# ---- Queries ----

def get_order(conn: Connection, order_id: str) -> Dict[str, Any]:
    row = conn.execute(
        select(
            orders,
            customers.c.name.label("customer_name"),
        )
        .select_from(orders.join(customers))
        .where(orders.c.id == order_id)
    ).mappings().first()

    if row is None:
        raise NotFoundError("Order not found")

    item_rows = conn.execute(
        select(
            order_items,
            service_types.c.name.label("service_type_name"),
            laundry_categories.c.name.label("category_name"),
        )
        .select_from(
            order_items.join(service_types).outerjoin(laundry_categories)
        )
        .where(order_items.c.order_id == order_id)
        .order_by(order_items.c.id)
    ).mappings().all()

    payment_rows = conn.execute(
        select(payments).where(payments.c.order_id == order_id).order_by(payments.c.created_at)
    ).mappings().all()

    order = dict(row)
    order["items"] = [dict(r) for r in item_rows]
    order["payments"] = [dict(r) for r in payment_rows]
    return order


def list_orders(
    conn: Connection,
    status: Optional[OrderStatus],
    customer_id: Optional[str],
    limit: int,
    offset: int,
) -> Dict[str, Any]:
    conditions = []
    if status is not None:
        conditions.append(orders.c.status == status.value)
    if customer_id is not None:
        conditions.append(orders.c.customer_id == customer_id)

    total = conn.execute(
        select(func.count()).select_from(orders).where(*conditions)
    ).scalar_one()

    item_count = (
        select(func.count())
        .select_from(order_items)
        .where(order_items.c.order_id == orders.c.id)
        .scalar_subquery()
    )
    payment_count = (
        select(func.count())
        .select_from(payments)
        .where(payments.c.order_id == orders.c.id)
        .scalar_subquery()
    )

    rows = conn.execute(
        select(
            orders.c.id,
            orders.c.invoice_number,
            orders.c.customer_id,
            customers.c.name.label("customer_name"),
            orders.c.total_amount,
            orders.c.amount_paid,
            orders.c.amount_due,
            orders.c.status,
            orders.c.payment_status,
            orders.c.created_at,
            item_count.label("item_count"),
            payment_count.label("payment_count"),
        )
        .select_from(orders.join(customers))
        .where(*conditions)
        .order_by(orders.c.created_at.desc())
        .limit(limit)
        .offset(offset)
    ).mappings().all()

    return {
        "items": [dict(r) for r in rows],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


def get_status_history(conn: Connection, order_id: str) -> List[Dict[str, Any]]:
    load_order(conn, order_id)
    rows = conn.execute(
        select(order_status_history)
        .where(order_status_history.c.order_id == order_id)
        .order_by(order_status_history.c.changed_at.desc(), order_status_history.c.id.desc())
    ).mappings().all()
    return [dict(r) for r in rows]
