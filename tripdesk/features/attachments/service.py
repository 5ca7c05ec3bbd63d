from __future__ import annotations

import asyncio
import logging
import secrets
import string
from collections.abc import AsyncIterator, Callable
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import urlsplit

from tripdesk.core.config import get_settings
from tripdesk.platform import PlatformError, PlatformSession

from . import messages, repo
from .errors import MetadataSaveError, UploadError
from .schemas import LINK_FILE_TYPE, AttachmentRecord, PendingFile, PendingLink
from .stored_ref import storage_path_from_value

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
_SUFFIX_LENGTH = 6
_DEFAULT_EXTENSION = "bin"


def _random_suffix(length: int = _SUFFIX_LENGTH) -> str:
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(length))


def _file_extension(filename: str) -> str:
    suffix = Path(filename).suffix.lstrip(".").lower()
    return suffix or _DEFAULT_EXTENSION


def build_object_path(
    owner_id: str,
    parent_id: str,
    filename: str,
    *,
    now: datetime | None = None,
    suffix: str | None = None,
) -> str:
    moment = now or datetime.now(timezone.utc)
    stamp = int(moment.timestamp() * 1000)
    return f"{owner_id}/{parent_id}/{stamp}-{suffix or _random_suffix()}.{_file_extension(filename)}"


async def _iter_chunks(
    data: bytes,
    *,
    chunk_size: int,
    on_progress: ProgressCallback | None,
) -> AsyncIterator[bytes]:
    total = len(data)
    sent = 0
    for offset in range(0, total, chunk_size):
        chunk = data[offset : offset + chunk_size]
        yield chunk
        sent += len(chunk)
        if on_progress is not None:
            on_progress(sent, total)


async def _signed_url_or_none(session: PlatformSession, path: str) -> str | None:
    settings = get_settings()
    try:
        return await session.create_signed_url(
            settings.attachments_bucket,
            path,
            settings.signed_url_ttl_seconds,
        )
    except PlatformError as exc:
        logger.debug("Signed URL unavailable for %s: %s", path, exc)
        return None


async def upload_one(
    session: PlatformSession,
    item: PendingFile,
    parent_id: str,
    *,
    on_progress: ProgressCallback | None = None,
) -> AttachmentRecord:
    """Store one file and write its attachments row.

    A rejected transfer raises ``UploadError`` before any row exists. A failed
    row insert raises ``MetadataSaveError`` and leaves the stored object in
    place; there is no compensating delete.
    """
    settings = get_settings()
    blob = item.file
    path = build_object_path(session.user_id, parent_id, blob.name)

    try:
        await session.upload_object(
            settings.attachments_bucket,
            path,
            _iter_chunks(blob.data, chunk_size=settings.upload_chunk_size_bytes, on_progress=on_progress),
            content_type=blob.content_type,
            content_length=blob.size,
        )
    except PlatformError as exc:
        raise UploadError(
            messages.UPLOAD_FAILED.format(name=blob.name),
            file_name=blob.name,
            status_code=exc.status_code,
        ) from exc

    try:
        record = await repo.insert_row(
            session,
            table=settings.attachments_table,
            values={
                "travel_request_id": parent_id,
                "uploaded_by": session.user_id,
                "file_name": blob.name,
                "file_url": path,
                "file_type": blob.content_type,
                "file_size": blob.size,
                "category": item.category,
            },
        )
    except PlatformError as exc:
        logger.error("Stored %s at %s but the attachments row insert failed: %s", blob.name, path, exc)
        raise MetadataSaveError(
            messages.SAVE_FAILED.format(name=blob.name),
            file_name=blob.name,
            storage_path=path,
        ) from exc

    resolved = await _signed_url_or_none(session, path)
    return record.model_copy(update={"storage_path": path, "resolved_url": resolved})


async def save_link(
    session: PlatformSession,
    link: PendingLink,
    parent_id: str,
) -> AttachmentRecord:
    settings = get_settings()
    hostname = urlsplit(link.url).hostname or link.url
    try:
        return await repo.insert_row(
            session,
            table=settings.attachments_table,
            values={
                "travel_request_id": parent_id,
                "uploaded_by": session.user_id,
                "file_name": hostname,
                "file_url": link.url,
                "file_type": LINK_FILE_TYPE,
                "file_size": 0,
                "category": link.category,
                "link_url": link.url,
                "notes": link.note or None,
            },
        )
    except PlatformError as exc:
        raise MetadataSaveError(
            messages.LINK_SAVE_FAILED.format(url=link.url),
            file_name=hostname,
        ) from exc


async def _resolve_record(session: PlatformSession, record: AttachmentRecord) -> AttachmentRecord:
    if record.is_link:
        return record
    path = storage_path_from_value(record.file_url, get_settings().attachments_bucket)
    if path is None:
        return record.model_copy(update={"storage_path": None, "resolved_url": None})
    resolved = await _signed_url_or_none(session, path)
    return record.model_copy(update={"storage_path": path, "resolved_url": resolved})


async def resolve_for_display(
    session: PlatformSession,
    records: list[AttachmentRecord],
) -> list[AttachmentRecord]:
    """Attach a fresh signed URL to every stored record, all records at once."""
    if not records:
        return []
    return list(await asyncio.gather(*(_resolve_record(session, record) for record in records)))


async def load_attachments(session: PlatformSession, parent_id: str) -> list[AttachmentRecord]:
    settings = get_settings()
    records = await repo.list_rows(session, table=settings.attachments_table, parent_id=parent_id)
    return await resolve_for_display(session, records)


async def remove_attachment(session: PlatformSession, record: AttachmentRecord) -> bool:
    """Remove the stored object (best effort), then the row.

    Returns whether the object removal succeeded. Row delete failures
    propagate as ``PlatformError``; by then the object may already be gone.
    """
    settings = get_settings()
    object_removed = record.is_link
    if not record.is_link:
        path = storage_path_from_value(record.file_url, settings.attachments_bucket)
        if path:
            try:
                await session.remove_objects(settings.attachments_bucket, [path])
                object_removed = True
            except PlatformError as exc:
                logger.warning("Storage remove failed for %s (%s); deleting row anyway.", path, exc)

    await repo.delete_row(session, table=settings.attachments_table, attachment_id=record.id)
    return object_removed
