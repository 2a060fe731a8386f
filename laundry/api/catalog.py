# laundry/api/catalog.py

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.engine import Engine

from laundry.db.engine import get_engine
from laundry.db.schema import laundry_categories, service_types
from laundry.models.catalog import LaundryCategoryOut, ServiceTypeOut

router = APIRouter(tags=["catalog"])


@router.get("/service-types/", response_model=List[ServiceTypeOut])
def list_service_types(engine: Engine = Depends(get_engine)) -> List[ServiceTypeOut]:
    with engine.connect() as conn:
        rows = conn.execute(
            select(service_types).order_by(service_types.c.name)
        ).mappings().all()

    return [ServiceTypeOut(**row) for row in rows]


@router.get("/laundry-categories/", response_model=List[LaundryCategoryOut])
def list_laundry_categories(engine: Engine = Depends(get_engine)) -> List[LaundryCategoryOut]:
    with engine.connect() as conn:
        rows = conn.execute(
            select(laundry_categories).order_by(laundry_categories.c.name)
        ).mappings().all()

    return [LaundryCategoryOut(**row) for row in rows]
