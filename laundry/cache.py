# laundry/cache.py
"""
In-process cache for rendered order views (detail page and list pages).

Writers drop the affected entries after a successful commit so the next read
is rebuilt from the database. Every invalidation bumps a generation counter;
a reader takes the generation before it queries and passes it to
``set_view``, which refuses to store the view if a write was invalidated in
between. Entries are evicted least recently used once ``MAX_ENTRIES`` is
reached.
"""

import logging
import threading
from collections import OrderedDict
from typing import Any, Optional

from laundry.config import settings

logger = logging.getLogger(__name__)

ORDER_LIST_PREFIX = "orders:list"
MAX_ENTRIES = settings.view_cache_max_entries

_lock = threading.Lock()
_VIEW_CACHE: "OrderedDict[str, Any]" = OrderedDict()
_generation = 0


def order_detail_key(order_id: str) -> str:
    return f"orders:detail:{order_id}"


def order_list_key(**params: Any) -> str:
    parts = [f"{name}={params[name]}" for name in sorted(params)]
    return f"{ORDER_LIST_PREFIX}?" + "&".join(parts)


def generation() -> int:
    with _lock:
        return _generation


def get_view(key: str) -> Optional[Any]:
    with _lock:
        value = _VIEW_CACHE.get(key)
        if value is not None:
            _VIEW_CACHE.move_to_end(key)
        return value


def set_view(key: str, value: Any, read_generation: int) -> bool:
    """Store ``value`` unless an invalidation happened since ``read_generation``."""
    with _lock:
        if read_generation != _generation:
            return False
        _VIEW_CACHE[key] = value
        _VIEW_CACHE.move_to_end(key)
        while len(_VIEW_CACHE) > MAX_ENTRIES:
            _VIEW_CACHE.popitem(last=False)
        return True


def invalidate(key: str) -> None:
    global _generation
    with _lock:
        _generation += 1
        _VIEW_CACHE.pop(key, None)


def invalidate_prefix(prefix: str) -> None:
    global _generation
    with _lock:
        _generation += 1
        for key in [k for k in _VIEW_CACHE if k.startswith(prefix)]:
            del _VIEW_CACHE[key]


def clear() -> None:
    global _generation
    with _lock:
        _generation += 1
        _VIEW_CACHE.clear()


def size() -> int:
    with _lock:
        return len(_VIEW_CACHE)


def invalidate_order_views(order_id: str) -> None:
    """Drop the detail view of one order and every cached list page."""
    try:
        invalidate(order_detail_key(order_id))
        invalidate_prefix(ORDER_LIST_PREFIX)
    except Exception:
        # Runs after commit, so a failure here only leaves a stale view
        logger.warning("Could not invalidate cached views for order %s", order_id, exc_info=True)
