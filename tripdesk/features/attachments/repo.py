from __future__ import annotations

from typing import Any

from tripdesk.platform import PlatformSession

from .schemas import AttachmentRecord, record_from_row


async def list_rows(
    session: PlatformSession,
    *,
    table: str,
    parent_id: str,
) -> list[AttachmentRecord]:
    rows = await session.select(
        table,
        filters={"travel_request_id": parent_id},
        order="uploaded_at",
        descending=True,
    )
    return [record_from_row(row) for row in rows]


async def insert_row(
    session: PlatformSession,
    *,
    table: str,
    values: dict[str, Any],
) -> AttachmentRecord:
    row = await session.insert(table, values)
    return record_from_row(row)


async def delete_row(
    session: PlatformSession,
    *,
    table: str,
    attachment_id: str,
) -> None:
    await session.delete(table, attachment_id)
