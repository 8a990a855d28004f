"""pyschoolbus - Async data-synchronization client for school transport operations."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyschoolbus")
except PackageNotFoundError:
    __version__ = "0+local"
from pyschoolbus.client import SchoolBusClient
from pyschoolbus.config import CallerIdentity, SchoolBusConfig
from pyschoolbus.exceptions import (
    SchoolBusApiError,
    SchoolBusAuthenticationError,
    SchoolBusConfigError,
    SchoolBusEndpointNotSupportedError,
    SchoolBusError,
    SchoolBusNotFoundError,
    SchoolBusTransportError,
)
from pyschoolbus.models import (
    Assignment,
    AssignmentConflict,
    AssignmentDraft,
    BulkImportResult,
    DashboardMetrics,
    Driver,
    DriverDraft,
    Location,
    Notification,
    OtpCode,
    PlatformSettings,
    QrCode,
    Route,
    RouteDraft,
    RouteExport,
    RouteStop,
    RouteType,
    School,
    SchoolDraft,
    Shift,
    ShiftDraft,
    Student,
    StudentDraft,
    StudentStatus,
    Trip,
    TripPlayback,
    TripStats,
)
from pyschoolbus.state import EntityStatus, EntityStore, EntityType, ResourceType

__all__ = [
    "__version__",
    "Assignment",
    "AssignmentConflict",
    "AssignmentDraft",
    "BulkImportResult",
    "CallerIdentity",
    "DashboardMetrics",
    "Driver",
    "DriverDraft",
    "EntityStatus",
    "EntityStore",
    "EntityType",
    "Location",
    "Notification",
    "OtpCode",
    "PlatformSettings",
    "QrCode",
    "ResourceType",
    "Route",
    "RouteDraft",
    "RouteExport",
    "RouteStop",
    "RouteType",
    "School",
    "SchoolBusApiError",
    "SchoolBusAuthenticationError",
    "SchoolBusClient",
    "SchoolBusConfig",
    "SchoolBusConfigError",
    "SchoolBusEndpointNotSupportedError",
    "SchoolBusError",
    "SchoolBusNotFoundError",
    "SchoolBusTransportError",
    "SchoolDraft",
    "Shift",
    "ShiftDraft",
    "Student",
    "StudentDraft",
    "StudentStatus",
    "Trip",
    "TripPlayback",
    "TripStats",
]
