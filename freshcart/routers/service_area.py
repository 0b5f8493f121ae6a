# freshcart/routers/service_area.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from freshcart.core.auth import require_admin
from freshcart.database import get_session
from freshcart.repositories.service_area_repo import ServiceAreaRepository
from freshcart.schemas.service_area import (
    EligibilityCheck,
    EligibilityResult,
    ServiceAreaRead,
    ServiceAreaWrite,
    ServiceZoneBulkCreate,
    ServiceZoneCreate,
    ServiceZoneRead,
    ServiceZoneUpdate,
    ZoneBulkResult,
)
from freshcart.services.eligibility_service import EligibilityService, build_policy
from freshcart.services.service_area_service import ServiceAreaService

router = APIRouter(tags=["Service Area"])

repo = ServiceAreaRepository()
eligibility = EligibilityService(build_policy(repo))
service = ServiceAreaService(repo)


# -------- Public endpoints --------


@router.post("/eligibility/check", response_model=EligibilityResult)
def check_eligibility(
    payload: EligibilityCheck,
    session: Session = Depends(get_session),
):
    """
    Can this location order?

    Send the browser's coordinates, or its geolocation error code
    (PERMISSION_DENIED / POSITION_UNAVAILABLE / TIMEOUT). Errors and
    missing data are ineligible; the UI should switch to browse-only.
    """
    return eligibility.check(session, payload)


@router.get("/service-area", response_model=ServiceAreaRead)
def get_service_area(session: Session = Depends(get_session)):
    """Active service area (or the configured default)."""
    return service.get_area(session)


# -------- Admin endpoints --------


@router.put(
    "/service-area",
    response_model=ServiceAreaRead,
    dependencies=[Depends(require_admin)],
)
def update_service_area(
    payload: ServiceAreaWrite,
    session: Session = Depends(get_session),
):
    """Edit the active area in place (creates one if none is active)."""
    return service.update_area(session, payload)


@router.post(
    "/service-area",
    response_model=ServiceAreaRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def replace_service_area(
    payload: ServiceAreaWrite,
    session: Session = Depends(get_session),
):
    """Create a new active area; the previous one is deactivated."""
    return service.replace_area(session, payload)


@router.get(
    "/service-zones",
    response_model=list[ServiceZoneRead],
    dependencies=[Depends(require_admin)],
)
def list_zones(session: Session = Depends(get_session)):
    return service.list_zones(session)


@router.post(
    "/service-zones",
    response_model=ServiceZoneRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def add_zone(
    payload: ServiceZoneCreate,
    session: Session = Depends(get_session),
):
    return service.add_zone(session, payload)


@router.post(
    "/service-zones/bulk",
    response_model=ZoneBulkResult,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def bulk_add_zones(
    payload: ServiceZoneBulkCreate,
    session: Session = Depends(get_session),
):
    return service.bulk_add_zones(session, payload)


@router.patch(
    "/service-zones/{zone_id}",
    response_model=ServiceZoneRead,
    dependencies=[Depends(require_admin)],
)
def update_zone(
    zone_id: uuid.UUID,
    payload: ServiceZoneUpdate,
    session: Session = Depends(get_session),
):
    """Rename or toggle a zone."""
    return service.update_zone(session, zone_id, payload)


@router.delete(
    "/service-zones/{zone_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_zone(
    zone_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    service.delete_zone(session, zone_id)
