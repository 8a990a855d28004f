"""Driver model and the driver onboarding artifacts (OTP, QR code)."""

from __future__ import annotations

from typing import Any

from pydantic import Field, model_validator

from pyschoolbus.models._base import SchoolBusBaseModel, SchoolBusDraft, SchoolBusEnum, SchoolBusRecord

__all__ = ["Driver", "DriverDraft", "DriverStatus", "OtpCode", "QrCode"]


class DriverStatus(SchoolBusEnum):
    UNKNOWN = "UNKNOWN"
    AVAILABLE = "AVAILABLE"
    ON_TRIP = "ON_TRIP"
    OFF_DUTY = "OFF_DUTY"
    PENDING = "PENDING"


class Driver(SchoolBusRecord):
    """A bus driver.

    ``vehicle`` is free text as entered in the console, typically
    ``"Toyota Coaster (BUS-101)"``; ``"Unassigned"`` when no bus is set.
    """

    name: str = ""
    vehicle: str = "Unassigned"
    phone: str = ""
    email: str = ""
    license: str = ""
    status: DriverStatus = DriverStatus.UNKNOWN
    avatar: str | None = None
    corporate: str = ""

    @property
    def vehicle_plate(self) -> str | None:
        """Plate inside the trailing parentheses of :attr:`vehicle`, if any."""
        start = self.vehicle.rfind("(")
        end = self.vehicle.rfind(")")
        if start == -1 or end <= start + 1:
            return None
        return self.vehicle[start + 1 : end].strip() or None


class DriverDraft(SchoolBusDraft):
    name: str = Field(min_length=1)
    vehicle: str = "Unassigned"
    phone: str = ""
    email: str = ""
    license: str = ""
    status: DriverStatus = DriverStatus.AVAILABLE
    avatar: str | None = None
    corporate: str | None = None


class OtpCode(SchoolBusBaseModel):
    """One-time code a driver uses to pair the driver app.

    Ephemeral: it is handed to the caller and never stored.
    """

    code: str
    expires_in: int = 300
    """Seconds until the code expires."""

    @model_validator(mode="before")
    @classmethod
    def _accept_otp_key(cls, values: Any) -> Any:
        # Backend answers {"otp": "123456", "expiresIn": 300}
        if isinstance(values, dict) and "code" not in values and "otp" in values:
            values = {**values, "code": values["otp"]}
        return values


class QrCode(SchoolBusBaseModel):
    """Pairing QR code for a driver."""

    qr_data: str
    url: str | None = None
