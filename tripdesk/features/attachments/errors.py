from __future__ import annotations


class AttachmentsDomainError(Exception):
    """Base exception for travel request attachment operations."""


class WorkspaceNotFoundError(AttachmentsDomainError):
    pass


class WorkspaceBusyError(AttachmentsDomainError):
    pass


class AttachmentValidationError(AttachmentsDomainError):
    pass


class PendingItemNotFoundError(AttachmentsDomainError):
    pass


class AttachmentNotFoundError(AttachmentsDomainError):
    pass


class UploadError(AttachmentsDomainError):
    """The storage endpoint rejected the object bytes; no row was written."""

    def __init__(self, message: str, *, file_name: str, status_code: int | None = None):
        super().__init__(message)
        self.file_name = file_name
        self.status_code = status_code


class MetadataSaveError(AttachmentsDomainError):
    """Object bytes are stored but the attachments row could not be written."""

    def __init__(self, message: str, *, file_name: str, storage_path: str | None = None):
        super().__init__(message)
        self.file_name = file_name
        self.storage_path = storage_path
