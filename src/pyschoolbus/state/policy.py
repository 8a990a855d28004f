"""Cache freshness policy.

Contains no I/O; the orchestrator asks these questions with its own clock.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from pyschoolbus.state.entities import EntityType, ResourceType, StoreKey

# Data that changes during the school day and gets the short TTL.
LIVE_ENTITIES: frozenset[StoreKey] = frozenset({EntityType.TRIPS, EntityType.NOTIFICATIONS, ResourceType.DASHBOARD})


def ttl_for(key: StoreKey, *, cache_ttl: float, live_cache_ttl: float) -> float:
    return live_cache_ttl if key in LIVE_ENTITIES else cache_ttl


def is_fresh(last_fetch: datetime | None, now: datetime, ttl_seconds: float) -> bool:
    """Whether a collection fetched at *last_fetch* may still be served.

    A non-positive TTL never expires.
    """
    if last_fetch is None:
        return False
    if ttl_seconds <= 0:
        return True
    return now - last_fetch < timedelta(seconds=ttl_seconds)
