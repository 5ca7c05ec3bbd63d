from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any, TypeVar

from tripdesk.core.config import get_settings

from .client import PlatformClient
from .errors import OperationTimeoutError, PlatformError, PlatformTransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRANSIENT_MARKERS = (
    "504",
    "request_timeout",
    "context deadline exceeded",
    "timeout",
    "failed to fetch",
    "network",
)


async def with_timeout(awaitable: Awaitable[T], seconds: float) -> T:
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError as exc:
        raise OperationTimeoutError(seconds=seconds) from exc


def is_transient_error(exc: Exception) -> bool:
    if isinstance(exc, PlatformTransportError):
        return True
    if isinstance(exc, PlatformError) and exc.status_code == 504:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _TRANSIENT_MARKERS)


async def _sign_in_with_retries(
    client: PlatformClient,
    email: str,
    password: str,
    *,
    max_attempts: int,
    backoff_seconds: float,
) -> dict[str, Any]:
    attempt = 1
    while True:
        try:
            return await client.sign_in_with_password(email, password)
        except PlatformError as exc:
            if not is_transient_error(exc) or attempt >= max_attempts:
                raise
            logger.warning(
                "Sign-in attempt %d/%d failed transiently (%s); retrying.",
                attempt,
                max_attempts,
                exc,
            )
            await asyncio.sleep(backoff_seconds * attempt)
            attempt += 1


async def sign_in(client: PlatformClient, email: str, password: str) -> dict[str, Any]:
    """Password sign-in with retries on transient failures, bounded overall.

    Raises ``OperationTimeoutError`` when the platform is slow to answer
    (typically a cold start) and ``PlatformError`` for everything else.
    """
    settings = get_settings()
    return await with_timeout(
        _sign_in_with_retries(
            client,
            email.strip(),
            password,
            max_attempts=settings.sign_in_max_attempts,
            backoff_seconds=settings.sign_in_backoff_seconds,
        ),
        settings.sign_in_timeout_seconds,
    )
