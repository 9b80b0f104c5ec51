import logging
from typing import Optional

from fastapi import Header, HTTPException, status

from src.Application.dependecie import dependencies
from src.Domain import UserContext, IdentityError

logger = logging.getLogger(__name__)


def bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        return ""
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


async def resolve_user(access_token: str) -> UserContext:
    """Usado também pelos websockets, que recebem o token na query string"""
    return await dependencies.identityProvider().get_current_user(access_token)


async def get_current_user(authorization: Optional[str] = Header(default=None)) -> UserContext:
    try:
        return await resolve_user(bearer_token(authorization))
    except IdentityError as e:
        logger.info(f"[Auth] 🔒 Acesso negado: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"}
        )
