"""
services/auth/router.py
Session endpoints. Tokens are issued by the identity provider; this
service reports who the bearer is and revokes tokens on logout.
"""

import logging

from fastapi import APIRouter, Depends

from config.redis_client import RedisCache, get_redis
from shared.actor import Actor
from shared.middleware.auth import TokenData, get_current_actor, get_token_data
from shared.schemas.schemas import MessageResponse, SessionResponse
from shared.utils.security import get_token_remaining_ttl

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.get("/session", response_model=SessionResponse, summary="Current session")
async def get_session(actor: Actor = Depends(get_current_actor)):
    """The Actor this request runs as."""
    return SessionResponse(id=actor.id, role=actor.role.value, name=actor.name)


@router.post("/logout", response_model=MessageResponse, summary="Logout user")
async def logout(
    token_data: TokenData = Depends(get_token_data),
    redis=Depends(get_redis),
):
    """Add the bearer token's JTI to the Redis deny-list until it expires."""
    if token_data.jti:
        ttl = get_token_remaining_ttl(token_data.payload)
        if ttl > 0:
            await RedisCache(redis).revoke_token(token_data.jti, ttl)
    logger.info(f"Session closed for {token_data.user_id}")
    return MessageResponse(message="Logged out successfully")
