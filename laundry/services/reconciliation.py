# laundry/services/reconciliation.py
"""
Order totals and payment reconciliation.

Everything in this module is pure: it takes the order as it was loaded and
the requested change, and returns the values the writer must persist.
Update payloads are resolved into one of two intents before any arithmetic
happens:

- ``ItemsUpdate``: an items list was sent (possibly empty). The item set is
  replaced and the total is recomputed from the caller-supplied line totals.
- ``PaymentOnlyUpdate``: no items list. The total is carried forward; an
  optional payment may be recorded, and status/notes/customer may change.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from laundry.errors import OrderValidationError
from laundry.models.orders import (
    CustomerRef,
    OrderItemIn,
    OrderPaymentStatus,
    OrderStatus,
    OrderUpdateIn,
)
from laundry.models.payments import PaymentMethod

ZERO = Decimal("0")


@dataclass(frozen=True)
class NewPayment:
    amount: Decimal
    method: Optional[PaymentMethod]
    transaction_id: Optional[str] = None


@dataclass(frozen=True)
class ItemsUpdate:
    items: Tuple[OrderItemIn, ...]
    discount: Optional[Decimal] = None
    payment: Optional[NewPayment] = None
    status: Optional[OrderStatus] = None
    notes: Optional[str] = None
    customer: Optional[CustomerRef] = None


@dataclass(frozen=True)
class PaymentOnlyUpdate:
    payment: Optional[NewPayment] = None
    status: Optional[OrderStatus] = None
    notes: Optional[str] = None
    customer: Optional[CustomerRef] = None


UpdateIntent = Union[ItemsUpdate, PaymentOnlyUpdate]


@dataclass(frozen=True)
class OrderSnapshot:
    id: str
    customer_id: str
    notes: Optional[str]
    total_amount: Decimal
    discount: Decimal
    status: OrderStatus
    version: int
    items: Tuple[Mapping[str, Any], ...]
    payments: Tuple[Mapping[str, Any], ...]

    @property
    def existing_payments_total(self) -> Decimal:
        return sum((Decimal(p["amount"]) for p in self.payments), ZERO)


@dataclass(frozen=True)
class Reconciliation:
    customer_id: Optional[str]
    new_customer: Optional[CustomerRef]
    notes: Optional[str]
    total_amount: Decimal
    amount_paid: Decimal
    amount_due: Decimal
    discount: Decimal
    status: OrderStatus
    previous_status: OrderStatus
    payment_status: OrderPaymentStatus
    replacement_items: Optional[Tuple[OrderItemIn, ...]]
    new_payment: Optional[NewPayment]

    @property
    def status_changed(self) -> bool:
        return self.status != self.previous_status


def derive_payment_status(total_amount: Decimal, amount_due: Decimal) -> OrderPaymentStatus:
    if amount_due <= 0:
        return OrderPaymentStatus.PAID
    if amount_due < total_amount:
        return OrderPaymentStatus.PARTIAL
    return OrderPaymentStatus.PENDING


def items_total(items, discount: Optional[Decimal]) -> Decimal:
    subtotal = sum((item.line_total for item in items), ZERO)
    return subtotal - (discount or ZERO)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


def _resolve_payment(payload: OrderUpdateIn) -> Optional[NewPayment]:
    # The structured form (record-payment dialog) wins over the legacy flat fields
    if payload.payments:
        first = payload.payments[0]
        return NewPayment(
            amount=first.amount or ZERO,
            method=first.payment_method,
            transaction_id=first.transaction_id,
        )
    if payload.amount_paid is not None and payload.amount_paid > 0:
        return NewPayment(amount=payload.amount_paid, method=payload.payment_method)
    return None


def resolve_update_intent(payload: Union[OrderUpdateIn, Mapping[str, Any]]) -> UpdateIntent:
    if not isinstance(payload, OrderUpdateIn):
        try:
            payload = OrderUpdateIn.model_validate(payload)
        except ValidationError as exc:
            raise OrderValidationError(_format_validation_error(exc)) from exc

    payment = _resolve_payment(payload)

    if payload.items is None:
        return PaymentOnlyUpdate(
            payment=payment,
            status=payload.status,
            notes=payload.notes,
            customer=payload.customer,
        )

    return ItemsUpdate(
        items=tuple(payload.items),
        discount=payload.discount,
        payment=payment,
        status=payload.status,
        notes=payload.notes,
        customer=payload.customer,
    )


def reconcile(snapshot: OrderSnapshot, intent: UpdateIntent) -> Reconciliation:
    if isinstance(intent, ItemsUpdate):
        total_amount = items_total(intent.items, intent.discount)
        discount = intent.discount or ZERO
        replacement_items = intent.items
    else:
        total_amount = snapshot.total_amount
        discount = snapshot.discount
        replacement_items = None

    new_payment_amount = intent.payment.amount if intent.payment else ZERO
    amount_paid = snapshot.existing_payments_total + new_payment_amount
    # Not clamped: a negative amount due means the customer overpaid
    amount_due = total_amount - amount_paid

    new_customer = None
    customer_id = snapshot.customer_id
    if intent.customer is not None:
        if intent.customer.id:
            customer_id = intent.customer.id
        else:
            new_customer = intent.customer
            customer_id = None

    new_payment = None
    if intent.payment and intent.payment.amount > 0 and intent.payment.method:
        new_payment = intent.payment

    return Reconciliation(
        customer_id=customer_id,
        new_customer=new_customer,
        notes=intent.notes if intent.notes is not None else snapshot.notes,
        total_amount=total_amount,
        amount_paid=amount_paid,
        amount_due=amount_due,
        discount=discount,
        status=intent.status or snapshot.status,
        previous_status=snapshot.status,
        payment_status=derive_payment_status(total_amount, amount_due),
        replacement_items=replacement_items,
        new_payment=new_payment,
    )
