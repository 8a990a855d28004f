"""Entity store and derived views."""

from pyschoolbus.state.entities import ChangeKind, EntityStatus, EntityType, ResourceType, StoreChange
from pyschoolbus.state.store import EntityStore
from pyschoolbus.state.views import DerivedViewEngine, derive_stops, filter_routes, filter_trips

__all__ = [
    "ChangeKind",
    "DerivedViewEngine",
    "EntityStatus",
    "EntityStore",
    "EntityType",
    "ResourceType",
    "StoreChange",
    "derive_stops",
    "filter_routes",
    "filter_trips",
]
