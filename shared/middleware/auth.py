"""
shared/middleware/auth.py
FastAPI dependencies adapting the identity provider's session to an Actor.
The bearer JWT is verified here; engine code only ever sees the Actor.
"""

import uuid
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.redis_client import RedisCache, get_redis
from shared.actor import Actor
from shared.models.models import Profile, ProfileStatus, Role
from shared.utils.security import verify_access_token

security = HTTPBearer(auto_error=False)


class TokenData:
    def __init__(self, payload: dict):
        self.user_id: str = payload["sub"]
        self.role: Role = Role(payload["role"])
        self.email: str = payload.get("email", "")
        self.jti: Optional[str] = payload.get("jti")
        self.payload = payload


async def get_token_data(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    redis=Depends(get_redis),
) -> TokenData:
    """
    Extract and validate the session JWT from the Authorization header.
    Tokens revoked through /auth/logout are refused via the Redis deny-list.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = verify_access_token(credentials.credentials)
        token = TokenData(payload)
    except (JWTError, KeyError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if token.jti and await RedisCache(redis).is_token_revoked(token.jti):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has been revoked",
        )

    return token


async def get_current_profile(
    token_data: TokenData = Depends(get_token_data),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    """Load the Profile named by the token subject."""
    profile = await db.scalar(select(Profile).where(Profile.id == _as_uuid(token_data.user_id)))

    if not profile:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Profile not found",
        )
    if profile.status in (ProfileStatus.BLOCKED, ProfileStatus.INACTIVE):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Account is {profile.status.value}",
        )
    return profile


async def get_current_actor(profile: Profile = Depends(get_current_profile)) -> Actor:
    # Role comes from the stored profile, not the token claim, so an
    # admin demotion takes effect before the token expires
    return Actor.from_profile(profile)


class RoleRequired:
    """Dependency factory for role-based access control."""

    def __init__(self, *roles: Role):
        self.roles = roles

    async def __call__(self, actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in self.roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Required role: {[r.value for r in self.roles]}",
            )
        return actor


require_professional = RoleRequired(Role.PROFESSIONAL)
require_admin = RoleRequired(Role.ADMIN)


def _as_uuid(value: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


async def get_optional_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
) -> Optional[Actor]:
    """Actor for public endpoints: None when anonymous or the token is unusable."""
    if not credentials:
        return None
    try:
        payload = verify_access_token(credentials.credentials)
        profile_id = uuid.UUID(str(payload["sub"]))
    except (JWTError, KeyError, ValueError):
        return None
    jti = payload.get("jti")
    if jti and await RedisCache(redis).is_token_revoked(jti):
        return None
    profile = await db.scalar(select(Profile).where(Profile.id == profile_id))
    if not profile or profile.status in (ProfileStatus.BLOCKED, ProfileStatus.INACTIVE):
        return None
    return Actor.from_profile(profile)
