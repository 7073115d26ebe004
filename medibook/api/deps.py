from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional

from ..core.config import settings
from ..core.database import get_db, get_redis
from ..core.exceptions import AuthenticationError, TooManyRequestsError
from ..core.security import security, verify_token, Actor, UserRole, TokenPayload
from ..models.user import User
from ..services import access_policy

async def get_current_user_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenPayload:
    """Extract and verify JWT token from Authorization header."""
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    token_payload = verify_token(credentials.credentials)
    if not token_payload:
        raise AuthenticationError("Invalid or expired token")

    if token_payload.token_type != "access":
        raise AuthenticationError("Invalid token type")

    return token_payload

def get_current_user(
    token_payload: TokenPayload = Depends(get_current_user_token),
    db: Session = Depends(get_db)
) -> User:
    """Load the authenticated user; re-derived on every request."""
    if not token_payload.sub:
        raise AuthenticationError("Invalid token payload")

    user = db.query(User).filter(User.id == token_payload.sub).first()
    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthenticationError("User account is deactivated")

    return user

def get_current_actor(current_user: User = Depends(get_current_user)) -> Actor:
    """Identity and role of the caller, passed explicitly to the services."""
    return Actor(id=current_user.id, role=current_user.role)

def require_role(*allowed_roles: UserRole):
    """Create a dependency that requires specific user roles."""
    def role_checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        access_policy.require_role(actor, *allowed_roles)
        return actor

    return role_checker

get_doctor_actor = require_role(UserRole.DOCTOR)
get_patient_actor = require_role(UserRole.PATIENT)

class PageParams:
    """``page``/``limit`` query parameters shared by paginated listings."""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    ):
        self.page = page
        self.limit = limit

async def rate_limit_check(
    request: Request,
    redis_client = Depends(get_redis)
) -> None:
    """Fixed-window rate limiting per client IP for public auth endpoints."""
    if not settings.RATE_LIMIT_ENABLED:
        return

    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:{request.url.path}:{client_ip}"

    current_requests = redis_client.get(key)
    if current_requests is None:
        redis_client.setex(key, settings.RATE_LIMIT_WINDOW_SECONDS, 1)
        return

    if int(current_requests) >= settings.RATE_LIMIT_REQUESTS:
        raise TooManyRequestsError()
    redis_client.incr(key)
