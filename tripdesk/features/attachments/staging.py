from __future__ import annotations

import logging
import mimetypes
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from uuid import uuid4

from pydantic import AnyUrl, TypeAdapter, ValidationError

from tripdesk.core.config import get_settings
from tripdesk.features.shared.notices import NoticeLog
from tripdesk.platform import PlatformError, PlatformSession

from . import messages, service
from .compression import compress_image
from .errors import (
    AttachmentValidationError,
    MetadataSaveError,
    PendingItemNotFoundError,
    UploadError,
    WorkspaceBusyError,
)
from .schemas import (
    ATTACHMENT_CATEGORIES,
    AttachmentRecord,
    FileBlob,
    PendingFile,
    PendingFileView,
    PendingLink,
    PendingLinkView,
    UploadProgress,
    WorkspaceView,
)

logger = logging.getLogger(__name__)

_IMAGE_MIME_PREFIX = "image/"
_ALLOWED_DOCUMENT_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}
_URL_ADAPTER = TypeAdapter(AnyUrl)

ProgressListener = Callable[[UploadProgress], None]


def resolve_content_type(name: str, declared: str | None) -> str:
    from_upload = (declared or "").strip().lower()
    if from_upload and from_upload != "application/octet-stream":
        return from_upload
    guessed, _ = mimetypes.guess_type(name)
    return (guessed or from_upload or "application/octet-stream").lower()


def is_allowed_type(content_type: str) -> bool:
    return content_type.startswith(_IMAGE_MIME_PREFIX) or content_type in _ALLOWED_DOCUMENT_TYPES


def is_valid_url(value: str) -> bool:
    try:
        _URL_ADAPTER.validate_python(value)
    except ValidationError:
        return False
    return True


def _check_category(category: str) -> str:
    if category not in ATTACHMENT_CATEGORIES:
        raise AttachmentValidationError(f"Unknown attachment category '{category}'.")
    return category


class _ProgressReporter:
    def __init__(
        self,
        workspace: AttachmentWorkspace,
        listener: ProgressListener | None,
        file_name: str,
        position: int,
        total: int,
    ):
        self._workspace = workspace
        self._listener = listener
        self._file_name = file_name
        self._position = position
        self._total = total
        self._last_percent = -1

    def __call__(self, sent: int, size: int) -> None:
        percent = 100 if size <= 0 else min(100, sent * 100 // size)
        if percent <= self._last_percent:
            return
        self._last_percent = percent
        progress = UploadProgress(
            file_name=self._file_name,
            percent=percent,
            position=self._position,
            total=self._total,
        )
        self._workspace.progress = progress
        if self._listener is not None:
            self._listener(progress)


class AttachmentWorkspace:
    """Files and links a user is attaching to one travel request.

    Items picked before the request exists are staged in memory and only
    reach the platform once ``upload_all`` (or a single save) is given a
    parent id. Staged items live exactly as long as this object.
    """

    def __init__(
        self,
        session: PlatformSession,
        *,
        parent_id: str | None = None,
        workspace_id: str | None = None,
    ):
        self.id = workspace_id or uuid4().hex
        self.session = session
        self.parent_id = parent_id
        self.pending_files: list[PendingFile] = []
        self.pending_links: list[PendingLink] = []
        self.attachments: list[AttachmentRecord] = []
        self.uploading = False
        self.progress: UploadProgress | None = None
        self.last_used = time.monotonic()

    @property
    def owner_id(self) -> str:
        return self.session.user_id

    def bind_session(self, session: PlatformSession) -> None:
        """Swap in a fresh access token for the same user."""
        self.session = session

    @contextmanager
    def _busy(self) -> Iterator[None]:
        if self.uploading:
            raise WorkspaceBusyError(messages.BUSY)
        self.uploading = True
        try:
            yield
        finally:
            self.uploading = False
            self.progress = None

    def _ensure_idle(self) -> None:
        if self.uploading:
            raise WorkspaceBusyError(messages.BUSY)

    def _accept_files(self, files: list[FileBlob], notices: NoticeLog) -> list[FileBlob]:
        settings = get_settings()
        max_size = settings.attachment_max_size_bytes
        accepted: list[FileBlob] = []
        for blob in files:
            content_type = resolve_content_type(blob.name, blob.content_type)
            if blob.size > max_size:
                notices.warning(
                    messages.FILE_TOO_LARGE.format(name=blob.name, max_mb=max_size // (1024 * 1024)),
                    detail=(
                        f"{blob.declared_size} bytes"
                        if blob.declared_size is not None
                        else f"more than {max_size} bytes"
                    ),
                )
                continue
            if not is_allowed_type(content_type):
                notices.warning(messages.FILE_TYPE_NOT_ALLOWED.format(name=blob.name), detail=content_type)
                continue
            if content_type != blob.content_type:
                blob = FileBlob(
                    name=blob.name,
                    content_type=content_type,
                    data=blob.data,
                    last_modified=blob.last_modified,
                    declared_size=blob.declared_size,
                )
            accepted.append(
                compress_image(
                    blob,
                    max_width=settings.image_max_width,
                    quality=settings.image_jpeg_quality,
                )
            )
        return accepted

    async def _upload_sequentially(
        self,
        items: list[PendingFile],
        parent_id: str,
        notices: NoticeLog,
        on_progress: ProgressListener | None,
    ) -> list[tuple[PendingFile, AttachmentRecord]]:
        done: list[tuple[PendingFile, AttachmentRecord]] = []
        total = len(items)
        for position, item in enumerate(items, start=1):
            reporter = _ProgressReporter(self, on_progress, item.file.name, position, total)
            try:
                record = await service.upload_one(self.session, item, parent_id, on_progress=reporter)
            except UploadError as exc:
                notices.error(str(exc), detail=f"status={exc.status_code}")
                continue
            except MetadataSaveError as exc:
                notices.error(str(exc), detail=f"orphaned object {exc.storage_path}")
                continue
            done.append((item, record))
        return done

    async def add_files(
        self,
        files: list[FileBlob],
        category: str,
        *,
        notices: NoticeLog,
        on_progress: ProgressListener | None = None,
    ) -> list[AttachmentRecord]:
        """Validate, compress and either upload or stage the selected files.

        Returns the records created when a parent id is known; staged files
        produce no records.
        """
        category = _check_category(category)
        self._ensure_idle()
        accepted = self._accept_files(files, notices)
        if not accepted:
            return []

        if self.parent_id is None:
            self.pending_files.extend(PendingFile(file=blob, category=category) for blob in accepted)
            for blob in accepted:
                notices.info(messages.FILE_STAGED.format(name=blob.name))
            return []

        with self._busy():
            items = [PendingFile(file=blob, category=category) for blob in accepted]
            done = await self._upload_sequentially(items, self.parent_id, notices, on_progress)

        records = [record for _, record in done]
        for record in records:
            notices.success(messages.UPLOAD_ONE_SUCCESS.format(name=record.file_name))
        self._prepend(list(reversed(records)))
        return records

    def remove_file(self, index: int) -> PendingFile:
        self._ensure_idle()
        if index < 0 or index >= len(self.pending_files):
            raise PendingItemNotFoundError(f"No pending file at index {index}.")
        return self.pending_files.pop(index)

    def add_link(
        self,
        url: str,
        category: str,
        note: str | None = None,
        *,
        notices: NoticeLog,
    ) -> bool:
        category = _check_category(category)
        self._ensure_idle()
        text = (url or "").strip()
        if not text:
            notices.error(messages.LINK_REQUIRED)
            return False
        if not is_valid_url(text):
            notices.error(messages.LINK_INVALID, detail=text)
            return False

        self.pending_links.append(PendingLink(url=text, category=category, note=(note or "").strip()))
        notices.success(messages.LINK_ADDED)
        return True

    def remove_link(self, index: int) -> PendingLink:
        self._ensure_idle()
        if index < 0 or index >= len(self.pending_links):
            raise PendingItemNotFoundError(f"No pending link at index {index}.")
        return self.pending_links.pop(index)

    async def upload_all(
        self,
        parent_id: str,
        *,
        notices: NoticeLog,
        on_progress: ProgressListener | None = None,
    ) -> list[AttachmentRecord]:
        """Persist every staged file, then every staged link, one at a time.

        Failed items are reported and skipped; the staging lists are cleared
        once every item has been attempted.
        """
        with self._busy():
            self.parent_id = parent_id
            files = list(self.pending_files)
            links = list(self.pending_links)

            done = await self._upload_sequentially(files, parent_id, notices, on_progress)
            uploaded = [record for _, record in done]

            for link in links:
                try:
                    uploaded.append(await service.save_link(self.session, link, parent_id))
                except MetadataSaveError as exc:
                    notices.error(str(exc), detail=str(exc.__cause__))

            self.pending_files.clear()
            self.pending_links.clear()

        self._prepend(uploaded)
        if uploaded:
            notices.success(messages.UPLOAD_BATCH_SUCCESS.format(count=len(uploaded)))
        return uploaded

    def _prepend(self, records: list[AttachmentRecord]) -> None:
        # A reload during the upload may already list these rows.
        new_ids = {record.id for record in records}
        self.attachments = records + [item for item in self.attachments if item.id not in new_ids]

    def _resolve_parent(self, parent_id: str | None) -> str:
        resolved = parent_id or self.parent_id
        if not resolved:
            raise AttachmentValidationError(messages.NO_PARENT)
        self.parent_id = resolved
        return resolved

    async def save_pending_file(
        self,
        index: int,
        *,
        parent_id: str | None = None,
        notices: NoticeLog,
        on_progress: ProgressListener | None = None,
    ) -> AttachmentRecord | None:
        """Upload one staged file; on failure it stays staged for another try."""
        if index < 0 or index >= len(self.pending_files):
            raise PendingItemNotFoundError(f"No pending file at index {index}.")
        target = self._resolve_parent(parent_id)
        with self._busy():
            item = self.pending_files[index]
            done = await self._upload_sequentially([item], target, notices, on_progress)
            if not done:
                return None
            self.pending_files.remove(item)

        record = done[0][1]
        self._prepend([record])
        notices.success(messages.UPLOAD_ONE_SUCCESS.format(name=record.file_name))
        return record

    async def save_pending_link(
        self,
        index: int,
        *,
        parent_id: str | None = None,
        notices: NoticeLog,
    ) -> AttachmentRecord | None:
        if index < 0 or index >= len(self.pending_links):
            raise PendingItemNotFoundError(f"No pending link at index {index}.")
        target = self._resolve_parent(parent_id)
        with self._busy():
            link = self.pending_links[index]
            try:
                record = await service.save_link(self.session, link, target)
            except MetadataSaveError as exc:
                notices.error(str(exc), detail=str(exc.__cause__))
                return None
            self.pending_links.remove(link)

        self._prepend([record])
        notices.success(messages.LINK_SAVED)
        return record

    async def load_attachments(self, *, notices: NoticeLog) -> list[AttachmentRecord]:
        if not self.parent_id:
            return self.attachments
        try:
            self.attachments = await service.load_attachments(self.session, self.parent_id)
        except PlatformError as exc:
            notices.error(messages.LOAD_FAILED, detail=str(exc))
        return self.attachments

    def find_attachment(self, attachment_id: str) -> AttachmentRecord | None:
        for record in self.attachments:
            if record.id == attachment_id:
                return record
        return None

    async def remove(self, record: AttachmentRecord, *, notices: NoticeLog) -> bool:
        try:
            object_removed = await service.remove_attachment(self.session, record)
        except PlatformError as exc:
            notices.error(messages.DELETE_FAILED, detail=str(exc))
            return False

        if not object_removed:
            notices.warning(messages.STORAGE_REMOVE_FAILED.format(name=record.file_name))
        self.attachments = [item for item in self.attachments if item.id != record.id]
        notices.success(messages.DELETED)
        return True

    def view(self) -> WorkspaceView:
        return WorkspaceView(
            id=self.id,
            travel_request_id=self.parent_id,
            uploading=self.uploading,
            pending_files=[
                PendingFileView(
                    index=index,
                    file_name=item.file.name,
                    content_type=item.file.content_type,
                    size_bytes=item.file.size,
                    category=item.category,
                )
                for index, item in enumerate(self.pending_files)
            ],
            pending_links=[
                PendingLinkView(index=index, url=link.url, category=link.category, note=link.note or None)
                for index, link in enumerate(self.pending_links)
            ],
            attachments=self.attachments,
        )
