# laundry/db/unit_of_work.py
"""
Explicit transactional boundary for multi-step writes.

Everything executed on the yielded connection commits together when the
block exits normally and rolls back when it raises.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(engine: Engine) -> Iterator[Connection]:
    with engine.connect() as conn:
        trans = conn.begin()
        try:
            yield conn
        except Exception:
            trans.rollback()
            logger.debug("Unit of work rolled back")
            raise
        else:
            trans.commit()
