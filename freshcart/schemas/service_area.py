# freshcart/schemas/service_area.py
import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field

from freshcart.schemas.order import GeolocationError, normalize_pin_code


class EligibilityCheck(SQLModel):
    """
    Browser geolocation result: either a point or the error code the
    browser reported. A pin code is needed when the pin-code policy is on.
    """

    model_config = ConfigDict(extra="forbid")

    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    accuracy: float | None = Field(default=None, ge=0)
    error: GeolocationError | None = None
    pin_code: str | None = None

    @field_validator("pin_code")
    @classmethod
    def valid_pin_code(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return normalize_pin_code(v)

    @model_validator(mode="after")
    def coordinates_pair(self) -> "EligibilityCheck":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be sent together")
        return self


class EligibilityResult(SQLModel):
    eligible: bool
    distance_km: float | None = None
    radius_km: float | None = None
    policy: str
    reason: str | None = None
    retryable: bool = False
    browse_only: bool = False
    closest_area: str | None = None


class ServiceAreaWrite(SQLModel):
    model_config = ConfigDict(extra="forbid")

    center_lat: float = Field(ge=-90, le=90)
    center_lng: float = Field(ge=-180, le=180)
    radius_km: float = Field(gt=0, le=500)
    city_name: str = Field(min_length=1, max_length=100)
    country: str = Field(min_length=1, max_length=100)


class ServiceAreaRead(SQLModel):
    id: uuid.UUID | None
    center_lat: float
    center_lng: float
    radius_km: float
    city_name: str
    country: str
    is_active: bool
    is_default: bool = False


class ServiceZoneCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    pin_code: str
    area_name: str | None = Field(default=None, max_length=100)

    @field_validator("pin_code")
    @classmethod
    def valid_pin_code(cls, v: str) -> str:
        return normalize_pin_code(v)


class ServiceZoneBulkCreate(SQLModel):
    """
    Comma separated pin codes, e.g. "400001,400002,400003".
    Entries that are not 6 digits are skipped.
    """

    model_config = ConfigDict(extra="forbid")

    pin_codes: str


class ServiceZoneUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    area_name: str | None = None
    is_active: bool | None = None


class ServiceZoneRead(SQLModel):
    id: uuid.UUID
    pin_code: str
    area_name: str | None
    is_active: bool
    created_at: datetime


class ZoneBulkResult(SQLModel):
    created: list[ServiceZoneRead]
    skipped: list[str]
