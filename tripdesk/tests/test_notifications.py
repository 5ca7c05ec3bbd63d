from __future__ import annotations

import asyncio

import pytest

from tripdesk.core.config import get_settings
from tripdesk.features.notifications import TRAVEL_REQUEST_NOTIFICATION, notify_travel_request, send_notification
from tripdesk.features.shared.notices import NoticeLog


@pytest.mark.asyncio
async def test_travel_request_notification_invokes_function(fake_session, parent_id) -> None:
    notices = NoticeLog()

    sent = await notify_travel_request(fake_session, parent_id, notices=notices)

    assert sent is True
    assert fake_session.calls_of("invoke") == [
        {"name": TRAVEL_REQUEST_NOTIFICATION, "body": {"travelRequestId": parent_id}}
    ]
    assert len(notices) == 0


@pytest.mark.asyncio
async def test_failed_notification_only_warns(fake_session) -> None:
    fake_session.fail("invoke")
    notices = NoticeLog()

    sent = await send_notification(fake_session, "notify-travel-request", {"travelRequestId": "r"}, notices=notices)

    assert sent is False
    assert [notice.level for notice in notices.items] == ["warning"]


@pytest.mark.asyncio
async def test_slow_notification_times_out_with_warning(fake_session, monkeypatch) -> None:
    monkeypatch.setattr(get_settings(), "notify_timeout_seconds", 0.05)

    async def slow_invoke(name, body=None):
        await asyncio.sleep(1)

    fake_session.invoke = slow_invoke
    notices = NoticeLog()

    sent = await send_notification(fake_session, "notify-travel-request", {}, notices=notices)

    assert sent is False
    assert notices.of_level("warning")
