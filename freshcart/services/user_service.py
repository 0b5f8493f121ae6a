# freshcart/services/user_service.py
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from freshcart.models.user import User
from freshcart.repositories.user_repo import UserRepository
from freshcart.schemas.user import UserRoleUpdate, UserUpdate


class UserService:
    """
    Business logic for profiles.

    Responsibilities:
      - self profile edits (name, phone)
      - admin role changes (promote riders / admins)
    """

    def __init__(self, repo: UserRepository):
        self.repo = repo

    def get_me(self, current_user: User) -> User:
        return current_user

    def update_me(
        self,
        session: Session,
        current_user: User,
        payload: UserUpdate,
    ) -> User:
        """Partial update; email and role are not editable here."""
        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(current_user, field, value)
        return self.repo.update(session, current_user)

    # ----- Admin operations -----

    def list_users(
        self,
        session: Session,
        role: str | None,
        skip: int,
        limit: int,
    ) -> list[User]:
        return self.repo.list(session, role=role, skip=skip, limit=limit)

    def get_user(self, session: Session, user_id: uuid.UUID) -> User:
        """
        Raises:
            HTTPException(404): if not found.
        """
        user = self.repo.get_by_id(session, user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )
        return user

    def update_role(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: UserRoleUpdate,
    ) -> User:
        user = self.get_user(session, user_id)
        user.role = payload.role
        return self.repo.update(session, user)
