# freshcart/repositories/service_area_repo.py
import uuid

from sqlalchemy import update
from sqlmodel import Session, select

from freshcart.models.delivery import ServiceArea, ServiceZone


class ServiceAreaRepository:
    """
    Data access layer for service_area and service_zones.
    No commits here.
    """

    # ----- Service area -----

    def get_active_area(self, session: Session) -> ServiceArea | None:
        stmt = (
            select(ServiceArea)
            .where(ServiceArea.is_active == True)  # noqa: E712
            .order_by(ServiceArea.created_at.desc())
        )
        return session.exec(stmt).first()

    def deactivate_all_areas(self, session: Session) -> None:
        stmt = (
            update(ServiceArea)
            .where(ServiceArea.is_active == True)  # noqa: E712
            .values(is_active=False)
        )
        session.connection().execute(stmt)
        # Loaded rows must not keep a stale is_active=True
        session.expire_all()

    def save_area(self, session: Session, area: ServiceArea) -> ServiceArea:
        session.add(area)
        session.flush()
        session.refresh(area)
        return area

    # ----- Service zones -----

    def list_zones(self, session: Session, only_active: bool = False) -> list[ServiceZone]:
        stmt = select(ServiceZone)
        if only_active:
            stmt = stmt.where(ServiceZone.is_active == True)  # noqa: E712
        return session.exec(stmt.order_by(ServiceZone.pin_code)).all()

    def get_zone(self, session: Session, zone_id: uuid.UUID) -> ServiceZone | None:
        return session.get(ServiceZone, zone_id)

    def get_zone_by_pin(self, session: Session, pin_code: str) -> ServiceZone | None:
        stmt = select(ServiceZone).where(ServiceZone.pin_code == pin_code)
        return session.exec(stmt).first()

    def is_active_pin(self, session: Session, pin_code: str) -> bool:
        stmt = select(ServiceZone.id).where(
            ServiceZone.pin_code == pin_code,
            ServiceZone.is_active == True,  # noqa: E712
        )
        return session.exec(stmt).first() is not None

    def save_zone(self, session: Session, zone: ServiceZone) -> ServiceZone:
        session.add(zone)
        session.flush()
        session.refresh(zone)
        return zone

    def delete_zone(self, session: Session, zone: ServiceZone) -> None:
        session.delete(zone)
        session.flush()
