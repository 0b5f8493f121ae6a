# freshcart/services/eligibility_service.py
import logging
from typing import Protocol

from sqlmodel import Session

from freshcart.core.config import Settings, get_settings
from freshcart.core.errors import EligibilityDenied
from freshcart.core.geo import closest_area, haversine_km
from freshcart.models.delivery import ServiceArea
from freshcart.repositories.service_area_repo import ServiceAreaRepository
from freshcart.schemas.service_area import EligibilityCheck, EligibilityResult

logger = logging.getLogger(__name__)

# Browser geolocation error -> (guidance, retryable)
GEOLOCATION_ERRORS: dict[str, tuple[str, bool]] = {
    "PERMISSION_DENIED": (
        "Location access was denied. Enable location for this site in your "
        "browser settings to order; you can still browse products.",
        False,
    ),
    "POSITION_UNAVAILABLE": (
        "Your location could not be determined. Please try again.",
        True,
    ),
    "TIMEOUT": (
        "Locating you took too long. Please try again.",
        True,
    ),
}


def default_area(settings: Settings) -> ServiceArea:
    """Configured fallback used when no service_area row is active."""
    return ServiceArea(
        id=None,
        center_lat=settings.DEFAULT_CENTER_LAT,
        center_lng=settings.DEFAULT_CENTER_LNG,
        radius_km=settings.DEFAULT_RADIUS_KM,
        city_name=settings.DEFAULT_CITY_NAME,
        country=settings.DEFAULT_COUNTRY,
        is_active=True,
    )


class EligibilityPolicy(Protocol):
    name: str

    def evaluate(self, session: Session, check: EligibilityCheck) -> EligibilityResult:
        ...


class RadiusPolicy:
    """
    Eligible iff the haversine distance to the active area's center is
    within its radius (boundary inclusive).
    """

    name = "radius"

    def __init__(self, repo: ServiceAreaRepository, settings: Settings):
        self.repo = repo
        self.settings = settings

    def resolve_area(self, session: Session) -> ServiceArea:
        return self.repo.get_active_area(session) or default_area(self.settings)

    def evaluate(self, session: Session, check: EligibilityCheck) -> EligibilityResult:
        if check.latitude is None or check.longitude is None:
            reason, retryable = GEOLOCATION_ERRORS.get(
                check.error or "",
                ("Location is required to check delivery availability.", True),
            )
            return EligibilityResult(
                eligible=False,
                policy=self.name,
                reason=reason,
                retryable=retryable,
                browse_only=True,
            )

        area = self.resolve_area(session)
        distance = haversine_km(
            check.latitude, check.longitude, area.center_lat, area.center_lng
        )
        eligible = distance <= area.radius_km

        return EligibilityResult(
            eligible=eligible,
            distance_km=round(distance, 3),
            radius_km=area.radius_km,
            policy=self.name,
            reason=None
            if eligible
            else f"We currently deliver within {area.radius_km:g} km of {area.city_name}.",
            retryable=False,
            browse_only=not eligible,
            closest_area=closest_area(
                check.latitude, check.longitude, self.settings.POPULAR_AREAS
            ),
        )


class PinCodePolicy:
    """
    Eligible iff the pin code belongs to an active service zone.
    Distance plays no part.
    """

    name = "pin_code"

    def __init__(self, repo: ServiceAreaRepository):
        self.repo = repo

    def evaluate(self, session: Session, check: EligibilityCheck) -> EligibilityResult:
        if not check.pin_code:
            return EligibilityResult(
                eligible=False,
                policy=self.name,
                reason="Pin code is required to check delivery availability.",
                retryable=True,
                browse_only=True,
            )

        eligible = self.repo.is_active_pin(session, check.pin_code)
        return EligibilityResult(
            eligible=eligible,
            policy=self.name,
            reason=None if eligible else "We do not deliver to this pin code yet.",
            browse_only=not eligible,
        )


def build_policy(
    repo: ServiceAreaRepository,
    settings: Settings | None = None,
) -> EligibilityPolicy:
    """Select the single active policy from ELIGIBILITY_POLICY."""
    settings = settings or get_settings()
    if settings.ELIGIBILITY_POLICY == "pin_code":
        return PinCodePolicy(repo)
    return RadiusPolicy(repo, settings)


class EligibilityService:
    """
    Service-area gate in front of checkout.
    """

    def __init__(self, policy: EligibilityPolicy):
        self.policy = policy

    def check(self, session: Session, check: EligibilityCheck) -> EligibilityResult:
        return self.policy.evaluate(session, check)

    def ensure_eligible(self, session: Session, check: EligibilityCheck) -> EligibilityResult:
        """
        Fail closed: anything but an explicit "eligible" blocks checkout.
        """
        result = self.check(session, check)
        if not result.eligible:
            logger.info(
                "Checkout blocked by %s policy: %s", result.policy, result.reason
            )
            raise EligibilityDenied(
                {
                    "message": result.reason or EligibilityDenied.default_detail,
                    "retryable": result.retryable,
                    "distance_km": result.distance_km,
                }
            )
        return result
