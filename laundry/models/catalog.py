# laundry/models/catalog.py

from typing import Optional

from pydantic import BaseModel


class ServiceTypeOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None


class LaundryCategoryOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
