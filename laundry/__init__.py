# laundry/__init__.py
"""
Package entrypoint for the laundry management API.

This lets us run:
    uvicorn laundry:app --reload
"""

from .main import app

__all__ = ["app"]
