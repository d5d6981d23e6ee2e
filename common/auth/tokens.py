"""Bearer token verification for tokens issued by the hosted auth provider."""
import logging
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel
from sqlalchemy.orm import Session

from common.config import AuthConfig, get_config
from common.db.models import Profile, UserRole
from common.errors import ConfigurationError, Forbidden, Unauthorized

logger = logging.getLogger(__name__)


class TokenClaims(BaseModel):
    sub: str
    email: Optional[str] = None
    role: Optional[str] = None


class AuthContext(BaseModel):
    """The caller behind a request: profile id, e-mail, role, active flag."""
    user_id: str
    email: str
    role: str
    is_active: bool

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def extract_bearer(authorization: Optional[str]) -> str:
    """Return the token part of an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthorized("Missing or invalid authorization header")
    return authorization[len("Bearer "):].strip()


def verify_token(token: str, config: Optional[AuthConfig] = None) -> TokenClaims:
    """Verify and decode a JWT access token."""
    config = config or get_config().auth
    if not config.jwt_secret:
        raise ConfigurationError("Server configuration error: JWT secret not set")
    try:
        payload = jwt.decode(
            token,
            config.jwt_secret,
            algorithms=[config.algorithm],
            audience=config.audience,
        )
    except JWTError as e:
        logger.warning(f"Token rejected: {e}")
        raise Unauthorized("Unauthorized: Invalid token")
    if not payload.get("sub"):
        raise Unauthorized("Unauthorized: Invalid token")
    return TokenClaims(**payload)


def load_auth_context(session: Session, claims: TokenClaims) -> AuthContext:
    """Resolve profile and role of the token subject."""
    profile = session.get(Profile, claims.sub)
    if profile is None:
        raise Unauthorized("Profile not found")
    role = session.get(UserRole, claims.sub)
    return AuthContext(
        user_id=profile.id,
        email=profile.email,
        role=role.role if role else "collaborator",
        is_active=profile.is_active,
    )


def require_active_admin(ctx: AuthContext) -> AuthContext:
    if not ctx.is_admin:
        raise Forbidden(f"Unauthorized: User is not an admin (role: {ctx.role})")
    if not ctx.is_active:
        raise Forbidden(f"Unauthorized: User {ctx.email} is inactive")
    return ctx
