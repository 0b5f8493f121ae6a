# freshcart/services/service_area_service.py
import logging
import uuid

from sqlmodel import Session

from freshcart.core.config import Settings, get_settings
from freshcart.core.errors import Conflict, NotFound
from freshcart.database import atomic
from freshcart.models.delivery import ServiceArea, ServiceZone
from freshcart.repositories.service_area_repo import ServiceAreaRepository
from freshcart.schemas.order import PIN_CODE_RE
from freshcart.schemas.service_area import (
    ServiceAreaRead,
    ServiceAreaWrite,
    ServiceZoneBulkCreate,
    ServiceZoneCreate,
    ServiceZoneRead,
    ServiceZoneUpdate,
    ZoneBulkResult,
)
from freshcart.services.eligibility_service import default_area

logger = logging.getLogger(__name__)


class ServiceAreaService:
    """
    Admin management of the radius service area and the pin-code zones.
    """

    def __init__(self, repo: ServiceAreaRepository, settings: Settings | None = None):
        self.repo = repo
        self.settings = settings or get_settings()

    # ----- Service area -----

    def get_area(self, session: Session) -> ServiceAreaRead:
        """Active area, or the configured default flagged is_default."""
        area = self.repo.get_active_area(session)
        if area is None:
            fallback = default_area(self.settings)
            return ServiceAreaRead(
                **fallback.model_dump(exclude={"created_at"}),
                is_default=True,
            )
        return ServiceAreaRead(**area.model_dump(exclude={"created_at"}))

    def update_area(self, session: Session, payload: ServiceAreaWrite) -> ServiceAreaRead:
        """
        Edit the active area in place; when none is active, create one.
        """
        area = self.repo.get_active_area(session)
        if area is None:
            return self.replace_area(session, payload)

        with atomic(session):
            for field, value in payload.model_dump().items():
                setattr(area, field, value)
            self.repo.save_area(session, area)

        session.refresh(area)
        return ServiceAreaRead(**area.model_dump(exclude={"created_at"}))

    def replace_area(self, session: Session, payload: ServiceAreaWrite) -> ServiceAreaRead:
        """
        Deactivate every active area and insert a new active one,
        keeping at most one active row.
        """
        with atomic(session):
            self.repo.deactivate_all_areas(session)
            area = self.repo.save_area(
                session,
                ServiceArea(**payload.model_dump(), is_active=True),
            )

        session.refresh(area)
        logger.info(
            "Service area set to %s (%.4f, %.4f) r=%skm",
            area.city_name,
            area.center_lat,
            area.center_lng,
            area.radius_km,
        )
        return ServiceAreaRead(**area.model_dump(exclude={"created_at"}))

    # ----- Service zones -----

    def list_zones(self, session: Session) -> list[ServiceZone]:
        return self.repo.list_zones(session)

    def add_zone(self, session: Session, payload: ServiceZoneCreate) -> ServiceZone:
        if self.repo.get_zone_by_pin(session, payload.pin_code) is not None:
            raise Conflict(f"Pin code {payload.pin_code} already exists")

        with atomic(session):
            zone = self.repo.save_zone(
                session,
                ServiceZone(pin_code=payload.pin_code, area_name=payload.area_name),
            )
        session.refresh(zone)
        return zone

    def bulk_add_zones(self, session: Session, payload: ServiceZoneBulkCreate) -> ZoneBulkResult:
        """
        Add every valid, new 6-digit pin code from a comma separated list.
        Invalid or already known codes are reported back as skipped.
        """
        created: list[ServiceZone] = []
        skipped: list[str] = []
        seen: set[str] = set()

        with atomic(session):
            for raw in payload.pin_codes.split(","):
                code = raw.strip()
                if not code:
                    continue
                if (
                    not PIN_CODE_RE.match(code)
                    or code in seen
                    or self.repo.get_zone_by_pin(session, code) is not None
                ):
                    skipped.append(code)
                    continue
                seen.add(code)
                created.append(self.repo.save_zone(session, ServiceZone(pin_code=code)))

        for zone in created:
            session.refresh(zone)
        return ZoneBulkResult(
            created=[ServiceZoneRead.model_validate(z) for z in created],
            skipped=skipped,
        )

    def update_zone(
        self,
        session: Session,
        zone_id: uuid.UUID,
        payload: ServiceZoneUpdate,
    ) -> ServiceZone:
        zone = self._get_zone_or_404(session, zone_id)
        with atomic(session):
            for field, value in payload.model_dump(exclude_unset=True).items():
                setattr(zone, field, value)
            self.repo.save_zone(session, zone)
        session.refresh(zone)
        return zone

    def delete_zone(self, session: Session, zone_id: uuid.UUID) -> None:
        zone = self._get_zone_or_404(session, zone_id)
        with atomic(session):
            self.repo.delete_zone(session, zone)

    def _get_zone_or_404(self, session: Session, zone_id: uuid.UUID) -> ServiceZone:
        zone = self.repo.get_zone(session, zone_id)
        if zone is None:
            raise NotFound("Service zone not found")
        return zone
