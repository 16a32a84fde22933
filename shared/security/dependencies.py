from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.repository import UserRepository
from shared.config.database import get_db
from shared.errors import Forbidden, Unauthorized

from .jwt_handler import verify_access_token
from .policy import Action, Role, can_perform

# Defines the expected header format (Bearer <token>)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    id: int
    email: str
    role: Role
    name: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


async def get_current_user(
    request: Request,
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Validates the bearer token and re-reads the user so role changes apply immediately."""
    if not token:
        raise Unauthorized("Unauthorized")

    payload = verify_access_token(token)
    if payload is None:
        raise Unauthorized("Invalid token")

    user = await UserRepository.get_by_id(db, int(payload["sub"]))
    if user is None:
        raise Unauthorized("Invalid token")

    # Store in request state for downstream use (like rate limiting)
    request.state.user_id = str(user.id)
    return CurrentUser(id=user.id, email=user.email, role=Role(user.role), name=user.name)


def require(action: Action):
    """Dependency factory gating a route on ``can_perform(role, action)``."""

    async def _check(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not can_perform(user.role, action):
            raise Forbidden()
        return user

    return _check
