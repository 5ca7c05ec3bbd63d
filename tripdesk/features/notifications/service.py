from __future__ import annotations

import logging
from typing import Any

from tripdesk.core.config import get_settings
from tripdesk.features.shared.notices import NoticeLog
from tripdesk.platform import OperationTimeoutError, PlatformError, PlatformSession, with_timeout

logger = logging.getLogger(__name__)

TRAVEL_REQUEST_NOTIFICATION = "notify-travel-request"

_NOTIFY_SLOW = "שליחת ההתראה לוקחת זמן רב, ייתכן שהשירות מתעורר. ההתראה לא נשלחה."
_NOTIFY_FAILED = "לא ניתן היה לשלוח התראה במייל"


async def send_notification(
    session: PlatformSession,
    function_name: str,
    body: dict[str, Any],
    *,
    notices: NoticeLog,
) -> bool:
    """Invoke a notification function without letting it fail the caller."""
    settings = get_settings()
    try:
        await with_timeout(session.invoke(function_name, body), settings.notify_timeout_seconds)
    except OperationTimeoutError:
        notices.warning(_NOTIFY_SLOW, detail=f"{function_name} exceeded {settings.notify_timeout_seconds}s")
        return False
    except PlatformError as exc:
        notices.warning(_NOTIFY_FAILED, detail=f"{function_name}: {exc}")
        return False
    logger.info("Notification %s sent.", function_name)
    return True


async def notify_travel_request(
    session: PlatformSession,
    travel_request_id: str,
    *,
    notices: NoticeLog,
) -> bool:
    return await send_notification(
        session,
        TRAVEL_REQUEST_NOTIFICATION,
        {"travelRequestId": travel_request_id},
        notices=notices,
    )
