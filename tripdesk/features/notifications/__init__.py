from __future__ import annotations

from .service import TRAVEL_REQUEST_NOTIFICATION, notify_travel_request, send_notification

__all__ = [
    "TRAVEL_REQUEST_NOTIFICATION",
    "notify_travel_request",
    "send_notification",
]
