# scripts/seed.py

import logging
import re

from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from laundry.db.engine import get_engine
from laundry.db.schema import branches, laundry_categories, metadata, service_types

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

SERVICE_TYPES = [
    ("Wash", "Washing service only"),
    ("Iron", "Ironing service only"),
    ("Wash & Iron", "Combined washing and ironing service"),
    ("Dry Clean", "Professional dry cleaning service"),
]

LAUNDRY_CATEGORIES = [
    ("Shirt", "All types of shirts"),
    ("Dress", "All types of dresses"),
    ("Suit", "Complete suits"),
    ("Gown", "Formal gowns"),
    ("Curtains", "Window curtains"),
    ("Carpet", "All types of carpets and rugs"),
    ("Trousers", "All types of pants and trousers"),
]

DEFAULT_BRANCH = {"name": "Main Branch", "address": None, "phone": None}


def slugify(name: str) -> str:
    """'Wash & Iron' -> 'wash-iron'; used as a stable primary key for reference rows."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def upsert_reference_rows(conn, table, rows) -> int:
    """
    Insert reference rows keyed by unique name; existing names are left alone
    so the seed can be re-run safely.
    """
    inserted = 0
    for name, description in rows:
        stmt = (
            sqlite_insert(table)
            .values(id=slugify(name), name=name, description=description)
            .on_conflict_do_nothing(index_elements=[table.c.name])
        )
        inserted += conn.execute(stmt).rowcount
    return inserted


def seed(engine) -> dict:
    metadata.create_all(engine)
    with engine.begin() as conn:
        n_service_types = upsert_reference_rows(conn, service_types, SERVICE_TYPES)
        n_categories = upsert_reference_rows(conn, laundry_categories, LAUNDRY_CATEGORIES)
        n_branches = conn.execute(
            sqlite_insert(branches)
            .values(id=slugify(DEFAULT_BRANCH["name"]), **DEFAULT_BRANCH)
            .on_conflict_do_nothing(index_elements=[branches.c.name])
        ).rowcount

    return {
        "n_service_types": n_service_types,
        "n_categories": n_categories,
        "n_branches": n_branches,
    }


def main():
    stats = seed(get_engine())

    logger.info(f"Service types inserted:      {stats['n_service_types']}")
    logger.info(f"Laundry categories inserted: {stats['n_categories']}")
    logger.info(f"Branches inserted:           {stats['n_branches']}")


if __name__ == "__main__":
    main()
