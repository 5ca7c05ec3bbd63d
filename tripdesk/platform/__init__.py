from __future__ import annotations

from .auth import is_transient_error, sign_in, with_timeout
from .client import PlatformClient
from .errors import OperationTimeoutError, PlatformAuthError, PlatformError, PlatformTransportError
from .session import PlatformSession

__all__ = [
    "OperationTimeoutError",
    "PlatformAuthError",
    "PlatformClient",
    "PlatformError",
    "PlatformSession",
    "PlatformTransportError",
    "is_transient_error",
    "sign_in",
    "with_timeout",
]
