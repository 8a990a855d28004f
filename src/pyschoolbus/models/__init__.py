"""Data models for school transport records."""

from pyschoolbus.models._base import SchoolBusBaseModel, SchoolBusDraft, SchoolBusEnum, SchoolBusRecord
from pyschoolbus.models.bulk import (
    CSV_TEMPLATE_COLUMNS,
    BulkImportResult,
    BulkStudentRow,
    RejectedRow,
    parse_student_csv,
)
from pyschoolbus.models.driver import Driver, DriverDraft, DriverStatus, OtpCode, QrCode
from pyschoolbus.models.notification import Notification, NotificationType
from pyschoolbus.models.reports import (
    ROUTE_EXPORT_COLUMNS,
    AssignmentConflict,
    DashboardMetrics,
    PlatformSettings,
    RouteExport,
    TripPlayback,
    TripStats,
)
from pyschoolbus.models.route import Route, RouteDraft, RouteHealth, RouteStatus, RouteStop, RouteType
from pyschoolbus.models.scheduling import (
    Assignment,
    AssignmentDraft,
    AssignmentStatus,
    Shift,
    ShiftDraft,
    ShiftStatus,
)
from pyschoolbus.models.school import School, SchoolDraft
from pyschoolbus.models.student import Location, Student, StudentDraft, StudentStatus
from pyschoolbus.models.trip import IncidentFlag, Trip, TripEvent, TripEventType, TripStatus

__all__ = [
    "CSV_TEMPLATE_COLUMNS",
    "ROUTE_EXPORT_COLUMNS",
    "Assignment",
    "AssignmentConflict",
    "AssignmentDraft",
    "AssignmentStatus",
    "BulkImportResult",
    "BulkStudentRow",
    "DashboardMetrics",
    "Driver",
    "DriverDraft",
    "DriverStatus",
    "IncidentFlag",
    "Location",
    "Notification",
    "NotificationType",
    "OtpCode",
    "PlatformSettings",
    "QrCode",
    "RejectedRow",
    "Route",
    "RouteDraft",
    "RouteExport",
    "RouteHealth",
    "RouteStatus",
    "RouteStop",
    "RouteType",
    "School",
    "SchoolBusBaseModel",
    "SchoolBusDraft",
    "SchoolBusEnum",
    "SchoolBusRecord",
    "SchoolDraft",
    "Shift",
    "ShiftDraft",
    "ShiftStatus",
    "Student",
    "StudentDraft",
    "StudentStatus",
    "Trip",
    "TripEvent",
    "TripEventType",
    "TripPlayback",
    "TripStats",
    "TripStatus",
    "parse_student_csv",
]
