# laundry/models/customers.py

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class CustomerIn(BaseModel):
    name: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class CustomerOut(BaseModel):
    id: str
    name: str
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CustomerDetailOut(CustomerOut):
    total_orders: int
    total_spent: Decimal
    amount_paid: Decimal
    amount_to_pay: Decimal


class CustomerListResponse(BaseModel):
    items: List[CustomerOut]
    total: int
    limit: int
    offset: int
