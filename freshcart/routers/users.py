# freshcart/routers/users.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from freshcart.core.auth import Role, require_auth, require_admin
from freshcart.database import get_session
from freshcart.models.user import User
from freshcart.repositories.user_repo import UserRepository
from freshcart.schemas.user import UserRead, UserRoleUpdate, UserUpdate
from freshcart.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])

repo = UserRepository()
service = UserService(repo)


# -------- Self profile --------


@router.get("/me", response_model=UserRead)
def read_me(current_user: User = Depends(require_auth)):
    """
    Return the authenticated user's profile.
    """
    return service.get_me(current_user)


@router.patch("/me", response_model=UserRead)
def update_me(
    payload: UserUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Update the authenticated user's name / phone.
    """
    return service.update_me(session, current_user, payload)


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=list[UserRead],
    dependencies=[Depends(require_admin)],
)
def list_users(
    session: Session = Depends(get_session),
    role: Role | None = None,
    skip: int = 0,
    limit: int = 50,
):
    """
    List users (admin only). `role=rider` feeds the rider picker.
    """
    return service.list_users(session, role, skip, limit)


@router.patch(
    "/{user_id}/role",
    response_model=UserRead,
    dependencies=[Depends(require_admin)],
)
def change_role(
    user_id: uuid.UUID,
    payload: UserRoleUpdate,
    session: Session = Depends(get_session),
):
    """
    Update a user's role (admin only): customer, admin or rider.
    """
    return service.update_role(session, user_id, payload)
