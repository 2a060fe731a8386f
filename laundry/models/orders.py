# laundry/models/orders.py

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from laundry.models.payments import PaymentMethod, PaymentOut


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderPaymentStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"


def _lower(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


class OrderItemIn(BaseModel):
    service_type_id: str = Field(..., alias="serviceTypeId", min_length=1)
    category_id: Optional[str] = Field(default=None, alias="categoryId")
    quantity: int = Field(..., ge=1)
    unit_price: Optional[Decimal] = Field(default=None, alias="unitPrice", ge=0)
    price: Optional[Decimal] = Field(default=None, ge=0)
    total: Optional[Decimal] = Field(default=None, ge=0)
    subtotal: Optional[Decimal] = Field(default=None, ge=0)
    notes: Optional[str] = None
    size: Optional[str] = None

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def _require_price_and_total(self) -> "OrderItemIn":
        if self.total is None and self.subtotal is None:
            raise ValueError("Each item must include its total")
        if self.unit_price is None and self.price is None:
            raise ValueError("Each item must include its unit price")
        return self

    @property
    def line_total(self) -> Decimal:
        # Caller-computed; not re-derived from quantity and unit price
        return self.total if self.total is not None else self.subtotal

    @property
    def unit_amount(self) -> Decimal:
        return self.unit_price if self.unit_price is not None else self.price


class PaymentIn(BaseModel):
    amount: Decimal = Field(default=Decimal("0"), ge=0)
    payment_method: Optional[PaymentMethod] = Field(default=None, alias="paymentMethod")
    transaction_id: Optional[str] = Field(default=None, alias="transactionId")

    class Config:
        populate_by_name = True

    @field_validator("payment_method", mode="before")
    @classmethod
    def _lowercase_method(cls, value: Any) -> Any:
        return _lower(value)


class CustomerRef(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    @model_validator(mode="after")
    def _new_customer_needs_name(self) -> "CustomerRef":
        if not self.id and not (self.name and self.name.strip()):
            raise ValueError("A new customer needs a name")
        return self


class OrderUpdateIn(BaseModel):
    """
    Partial update of an order.

    ``items`` replaces the whole item set when it is a list (even an empty one);
    any other value is treated as if the key were missing.
    """

    items: Optional[List[OrderItemIn]] = None
    discount: Optional[Decimal] = Field(default=None, ge=0)
    payments: Optional[List[PaymentIn]] = None
    amount_paid: Optional[Decimal] = Field(default=None, alias="amountPaid", ge=0)
    payment_method: Optional[PaymentMethod] = Field(default=None, alias="paymentMethod")
    status: Optional[OrderStatus] = None
    notes: Optional[str] = None
    customer: Optional[CustomerRef] = None

    class Config:
        populate_by_name = True

    @field_validator("items", mode="before")
    @classmethod
    def _non_list_items_are_absent(cls, value: Any) -> Any:
        return value if isinstance(value, list) else None

    @field_validator("payment_method", "status", mode="before")
    @classmethod
    def _lowercase_enums(cls, value: Any) -> Any:
        return _lower(value)


class OrderCreateIn(BaseModel):
    customer_id: str = Field(..., alias="customerId", min_length=1)
    branch_id: Optional[str] = Field(default=None, alias="branchId")
    notes: Optional[str] = None
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    amount_paid: Decimal = Field(default=Decimal("0"), alias="amountPaid", ge=0)
    payment_method: Optional[PaymentMethod] = Field(default=None, alias="paymentMethod")
    custom_invoice_number: Optional[str] = Field(default=None, alias="customInvoiceNumber")
    order_date: Optional[datetime] = Field(default=None, alias="orderDate")
    expected_delivery_date: Optional[datetime] = Field(default=None, alias="expectedDeliveryDate")
    items: List[OrderItemIn] = Field(..., min_length=1)

    class Config:
        populate_by_name = True

    @field_validator("payment_method", mode="before")
    @classmethod
    def _lowercase_method(cls, value: Any) -> Any:
        return _lower(value)

    @model_validator(mode="after")
    def _payment_needs_method(self) -> "OrderCreateIn":
        if self.amount_paid > 0 and self.payment_method is None:
            raise ValueError("Payment method is required when amount paid is greater than 0.")
        return self


class OrderItemOut(BaseModel):
    id: int
    service_type_id: str
    service_type_name: Optional[str] = None
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    quantity: int
    price: Decimal
    subtotal: Decimal
    notes: Optional[str] = None
    size: Optional[str] = None

    class Config:
        from_attributes = True


class OrderOut(BaseModel):
    id: str
    invoice_number: str
    customer_id: str
    customer_name: str
    branch_id: Optional[str] = None
    notes: Optional[str] = None
    total_amount: Decimal
    amount_paid: Decimal
    amount_due: Decimal
    discount: Decimal
    status: OrderStatus
    payment_status: OrderPaymentStatus
    order_date: datetime
    expected_delivery_date: Optional[datetime] = None
    version: int
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemOut]
    payments: List[PaymentOut]

    class Config:
        from_attributes = True


class OrderSummaryOut(BaseModel):
    id: str
    invoice_number: str
    customer_id: str
    customer_name: str
    total_amount: Decimal
    amount_paid: Decimal
    amount_due: Decimal
    status: OrderStatus
    payment_status: OrderPaymentStatus
    created_at: datetime
    item_count: int
    payment_count: int


class OrderListResponse(BaseModel):
    items: List[OrderSummaryOut]
    total: int
    limit: int
    offset: int


class StatusHistoryEntry(BaseModel):
    id: int
    order_id: str
    from_status: Optional[OrderStatus] = None
    to_status: OrderStatus
    changed_at: datetime
