from __future__ import annotations

from fastapi import Depends, Header, HTTPException

from tripdesk.core.config import get_settings

from .client import PlatformClient
from .errors import PlatformAuthError, PlatformError
from .session import PlatformSession

_client: PlatformClient | None = None


def get_platform_client() -> PlatformClient:
    global _client
    if _client is None:
        settings = get_settings()
        _client = PlatformClient(
            base_url=settings.platform_base_url,
            anon_key=settings.platform_anon_key,
            timeout=settings.platform_request_timeout_seconds,
        )
    return _client


async def close_platform_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


def _bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing bearer token.")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Missing bearer token.")
    return token.strip()


async def get_platform_session(
    authorization: str | None = Header(default=None),
    client: PlatformClient = Depends(get_platform_client),
) -> PlatformSession:
    token = _bearer_token(authorization)
    try:
        user = await client.get_user(token)
    except PlatformAuthError as exc:
        raise HTTPException(status_code=401, detail="Session expired, please sign in again.") from exc
    except PlatformError as exc:
        raise HTTPException(status_code=502, detail="Authentication service unavailable.") from exc
    return PlatformSession(client=client, access_token=token, user_id=str(user["id"]))
