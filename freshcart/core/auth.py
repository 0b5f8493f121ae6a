# freshcart/core/auth.py
import uuid
from dataclasses import dataclass
from typing import Any, Literal

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlmodel import Session, select

from freshcart.core.config import get_settings
from freshcart.database import get_session
from freshcart.models.user import User

settings = get_settings()

Role = Literal["customer", "admin", "rider"]

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so we can support "guest" mode (unauthenticated checkout and tracking).
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Actor:
    """
    Identity + role claim handed to every core operation.

    Built once per request from the verified token; services check the
    role against the operation instead of looking the session up again.
    """

    id: uuid.UUID
    role: Role

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(id=user.id, role=user.role)  # type: ignore[arg-type]

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_rider(self) -> bool:
        return self.role == "rider"


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a Supabase access token (JWT).

    Verification:
      - signature (HS256 using SUPABASE_JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified (Supabase 'aud' may vary)

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def _default_name_from_email(email: str) -> str:
    if "@" in email:
        return email.split("@", 1)[0]
    return email


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User | None:
    """
    Resolve the current user from a Supabase JWT.

    Flow:
      1. If no Authorization header => guest => return None.
      2. Decode JWT => extract 'sub' (auth user id) and 'email'.
      3. Find the profile row; auto-provision it (role='customer') if missing.

    Raises:
        HTTPException(401): if token is malformed or missing required claims.
    """
    if credentials is None:
        return None  # guest mode

    payload = decode_access_token(credentials.credentials)
    sub = payload.get("sub")
    email = payload.get("email")

    if not sub or not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing sub/email",
        )

    try:
        sub_uuid = uuid.UUID(sub)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid sub in token",
        )

    user = session.exec(select(User).where(User.id == sub_uuid)).first()

    # Admins and riders must be promoted manually.
    if user is None:
        user = User(
            id=sub_uuid,
            email=email,
            full_name=_default_name_from_email(email),
            phone=(payload.get("user_metadata") or {}).get("phone"),
            role="customer",
        )
        session.add(user)
        session.commit()
        session.refresh(user)

    return user


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user


def _require_role(user: User, role: Role, detail: str) -> User:
    if user.role != role:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )
    return user


def require_admin(user: User = Depends(require_auth)) -> User:
    """Enforce role='admin' (403 otherwise)."""
    return _require_role(user, "admin", "Admin access required")


def require_rider(user: User = Depends(require_auth)) -> User:
    """Enforce role='rider' (403 otherwise)."""
    return _require_role(user, "rider", "Rider access required")


def require_customer(user: User = Depends(require_auth)) -> User:
    """Enforce role='customer' for "my orders" routes."""
    return _require_role(user, "customer", "Customer access required")


def get_optional_actor(user: User | None = Depends(get_current_user)) -> Actor | None:
    """Actor for routes that also serve guests (checkout)."""
    return Actor.from_user(user) if user is not None else None


def get_actor(user: User = Depends(require_auth)) -> Actor:
    return Actor.from_user(user)


def get_admin_actor(user: User = Depends(require_admin)) -> Actor:
    return Actor.from_user(user)


def get_rider_actor(user: User = Depends(require_rider)) -> Actor:
    return Actor.from_user(user)
