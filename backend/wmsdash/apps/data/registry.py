"""
In-process registry of data stores, one per signed-in dashboard session.

Stores are dropped on sign-out and whenever a request finds its session
deactivated. Stores left behind by sessions that simply stop calling are
evicted after DATA_STORE_IDLE_MINUTES without use, and the registry never
holds more than DATA_STORE_MAX_SESSIONS stores (least recently used go
first).
"""

from __future__ import annotations

import logging
import os
import threading
import time
from collections import OrderedDict
from typing import Any, Optional, Tuple

from wmsdash.apps.proxy import ProxyClient
from .store import DataStore

logger = logging.getLogger(__name__)

DATA_STORE_IDLE_MINUTES = int(os.getenv("DATA_STORE_IDLE_MINUTES", "480"))
DATA_STORE_MAX_SESSIONS = int(os.getenv("DATA_STORE_MAX_SESSIONS", "200"))

# session id -> (store, last used, monotonic seconds); most recently used last.
_STORES: "OrderedDict[str, Tuple[DataStore, float]]" = OrderedDict()
_STORES_LOCK = threading.Lock()

_clock = time.monotonic


def _evict_locked(now: float) -> None:
    idle_limit = DATA_STORE_IDLE_MINUTES * 60
    while _STORES:
        key, (_, last_used) = next(iter(_STORES.items()))
        if now - last_used <= idle_limit and len(_STORES) <= DATA_STORE_MAX_SESSIONS:
            break
        _STORES.popitem(last=False)
        logger.info("data store evicted", extra={"session_id": key, "idle_sec": int(now - last_used)})


def get_store(session: Any, client: Optional[ProxyClient] = None) -> DataStore:
    """Return the session's store, creating it on first use."""
    key = str(session.id)
    now = _clock()
    with _STORES_LOCK:
        entry = _STORES.pop(key, None)
        store = entry[0] if entry else DataStore(client or ProxyClient.for_session(session))
        _STORES[key] = (store, now)
        _evict_locked(now)
        return store


def evict_idle() -> int:
    """Drop stores past the idle limit; returns how many are left."""
    with _STORES_LOCK:
        _evict_locked(_clock())
        return len(_STORES)


def has_store(session_id: Any) -> bool:
    with _STORES_LOCK:
        return str(session_id) in _STORES


def drop_store(session_id: Any) -> None:
    with _STORES_LOCK:
        _STORES.pop(str(session_id), None)


def clear_registry() -> None:
    with _STORES_LOCK:
        _STORES.clear()
