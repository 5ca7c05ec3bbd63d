from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from tripdesk.platform import OperationTimeoutError, PlatformAuthError, PlatformClient, PlatformError, sign_in
from tripdesk.platform.deps import get_platform_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

_SIGN_IN_SLOW = "ההתחברות לוקחת זמן רב, ייתכן שהשירות מתעורר. נסו שוב בעוד מספר שניות."
_SIGN_IN_REJECTED = "אימייל או סיסמה שגויים"
_SIGN_IN_UNAVAILABLE = "שירות ההתחברות אינו זמין כרגע"


class SignInInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=1, max_length=1024)


class SignInResult(BaseModel):
    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    user_id: str


def _raise_http_error(exc: Exception) -> None:
    if isinstance(exc, OperationTimeoutError):
        raise HTTPException(status_code=504, detail=_SIGN_IN_SLOW) from exc
    if isinstance(exc, PlatformAuthError) or (isinstance(exc, PlatformError) and exc.status_code == 400):
        raise HTTPException(status_code=401, detail=_SIGN_IN_REJECTED) from exc
    if isinstance(exc, PlatformError):
        raise HTTPException(status_code=502, detail=_SIGN_IN_UNAVAILABLE) from exc
    raise exc


@router.post("/sign-in", response_model=SignInResult)
async def sign_in_with_password(
    payload: SignInInput,
    client: PlatformClient = Depends(get_platform_client),
) -> SignInResult:
    try:
        session = await sign_in(client, payload.email, payload.password)
    except Exception as exc:
        logger.warning("Sign-in failed for %s: %s", payload.email.strip(), exc)
        _raise_http_error(exc)

    user = session.get("user") or {}
    return SignInResult(
        access_token=session["access_token"],
        refresh_token=session.get("refresh_token"),
        expires_in=session.get("expires_in"),
        user_id=str(user.get("id", "")),
    )
