import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException

from . import config
from .sessions import AdminSession, SessionStore, get_session_store

logger = logging.getLogger("uvicorn")


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[len("Bearer "):]


async def require_api_key(authorization: Optional[str] = Header(default=None)):
    # Protection is off unless API_KEY is set
    if not config.API_KEY:
        return

    token = bearer_token(authorization)
    if token is None:
        raise HTTPException(status_code=401, detail="Missing or invalid authorization header")

    if token != config.API_KEY:
        logger.warning("Rejected request with invalid API key")
        raise HTTPException(status_code=403, detail="Invalid API key")


async def require_admin(
        authorization: Optional[str] = Header(default=None),
        store: SessionStore = Depends(get_session_store),
    ) -> AdminSession:
    token = bearer_token(authorization)
    if token is None:
        raise HTTPException(status_code=401, detail="Authentication required")

    session = store.validate(token)
    if session is None:
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    return session


async def admin_token(authorization: Optional[str] = Header(default=None)) -> Optional[str]:
    return bearer_token(authorization)
