# laundry/api/customers.py

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.engine import Engine

from laundry.db.engine import get_engine
from laundry.models.customers import (
    CustomerDetailOut,
    CustomerIn,
    CustomerListResponse,
    CustomerOut,
)
from laundry.services import customers as customer_service

router = APIRouter(prefix="/customers", tags=["customers"])


@router.get("/", response_model=CustomerListResponse)
def list_customers(
    q: Optional[str] = Query(default=None, description="Matches name, email or phone (case-insensitive)"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    engine: Engine = Depends(get_engine),
) -> CustomerListResponse:
    """
    Return customers ordered by name.
    """
    with engine.connect() as conn:
        page = customer_service.list_customers(conn, q, limit, offset)

    return CustomerListResponse(**page)


@router.post("/", response_model=CustomerOut, status_code=201)
def create_customer(payload: CustomerIn, engine: Engine = Depends(get_engine)) -> CustomerOut:
    row = customer_service.create_customer(engine, payload)
    return CustomerOut(**row)


@router.get("/{customer_id}", response_model=CustomerDetailOut)
def get_customer(customer_id: str, engine: Engine = Depends(get_engine)) -> CustomerDetailOut:
    """
    Return a single customer with order and balance totals.
    """
    with engine.connect() as conn:
        row = customer_service.get_customer_detail(conn, customer_id)

    return CustomerDetailOut(**row)
