# laundry/models/payments.py

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    MOBILE_MONEY = "mobile_money"


class PaymentRecordStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentOut(BaseModel):
    id: str
    order_id: str
    amount: Decimal
    payment_method: PaymentMethod
    transaction_id: Optional[str] = None
    status: PaymentRecordStatus
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentListItem(PaymentOut):
    invoice_number: str
    customer_name: str


class PaymentListResponse(BaseModel):
    items: List[PaymentListItem]
    total: int
    limit: int
    offset: int
