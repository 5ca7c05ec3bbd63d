from __future__ import annotations

from .compression import compress_image
from .errors import (
    AttachmentNotFoundError,
    AttachmentsDomainError,
    AttachmentValidationError,
    MetadataSaveError,
    PendingItemNotFoundError,
    UploadError,
    WorkspaceBusyError,
    WorkspaceNotFoundError,
)
from .registry import WorkspaceRegistry, get_workspace_registry
from .schemas import AttachmentRecord, FileBlob, PendingFile, PendingLink, UploadProgress
from .service import (
    build_object_path,
    load_attachments,
    remove_attachment,
    resolve_for_display,
    save_link,
    upload_one,
)
from .staging import AttachmentWorkspace
from .stored_ref import LegacyUrl, StoragePath, StoredRef, parse_stored_ref, storage_path_for

__all__ = [
    "AttachmentNotFoundError",
    "AttachmentRecord",
    "AttachmentValidationError",
    "AttachmentWorkspace",
    "AttachmentsDomainError",
    "FileBlob",
    "LegacyUrl",
    "MetadataSaveError",
    "PendingFile",
    "PendingItemNotFoundError",
    "PendingLink",
    "StoragePath",
    "StoredRef",
    "UploadError",
    "UploadProgress",
    "WorkspaceBusyError",
    "WorkspaceNotFoundError",
    "WorkspaceRegistry",
    "build_object_path",
    "compress_image",
    "get_workspace_registry",
    "load_attachments",
    "parse_stored_ref",
    "remove_attachment",
    "resolve_for_display",
    "save_link",
    "storage_path_for",
    "upload_one",
]
