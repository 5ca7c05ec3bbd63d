from __future__ import annotations


class PlatformError(Exception):
    """Base exception for calls against the backend platform."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PlatformTransportError(PlatformError):
    """The request never produced an HTTP response (connect, read or write failure)."""


class PlatformAuthError(PlatformError):
    pass


class OperationTimeoutError(PlatformError):
    def __init__(self, message: str = "timeout", *, seconds: float | None = None):
        super().__init__(message)
        self.seconds = seconds
