"""
api/routes/auth.py

POST /login  - exchange the static admin credentials for the bearer token

require_admin() is the dependency that gates every operator endpoint.
"""

from __future__ import annotations

import hmac
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException

from ...config import Settings, settings
from ..serializers import LoginRequest, LoginResponse

logger = logging.getLogger(__name__)
router = APIRouter(tags=["auth"])


def get_settings() -> Settings:
    """FastAPI dependency - replaced in tests via app.dependency_overrides."""
    return settings


def require_admin(
    authorization: Annotated[str | None, Header()] = None,
    cfg: Settings = Depends(get_settings),
) -> None:
    expected = f"Bearer {cfg.ADMIN_TOKEN}"
    if not authorization or not hmac.compare_digest(authorization, expected):
        raise HTTPException(status_code=401, detail="Unauthorized: Please Login")


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    cfg: Settings = Depends(get_settings),
) -> LoginResponse:
    """Return the admin token for valid credentials."""
    if body.username == cfg.ADMIN_USERNAME and body.password == cfg.ADMIN_PASSWORD:
        return LoginResponse(token=cfg.ADMIN_TOKEN, message="Login Successful")
    logger.info("Failed operator login for %r", body.username)
    raise HTTPException(status_code=401, detail="Invalid Credentials")
