from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from tripdesk.features.shared.notices import Notice

AttachmentCategory = Literal["flights", "accommodation", "transport", "other"]
ATTACHMENT_CATEGORIES: tuple[str, ...] = ("flights", "accommodation", "transport", "other")
DEFAULT_CATEGORY: AttachmentCategory = "flights"
LINK_FILE_TYPE = "link"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class FileBlob:
    """File bytes as selected by the user, before anything is persisted."""

    name: str
    content_type: str
    data: bytes
    last_modified: datetime = field(default_factory=_utcnow)
    # Size reported by the client when ``data`` was cut short at the upload ceiling.
    declared_size: int | None = None

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")


@dataclass
class PendingFile:
    file: FileBlob
    category: str


@dataclass
class PendingLink:
    url: str
    category: str
    note: str = ""


class AttachmentRecord(BaseModel):
    """One row of the attachments table plus view-only fields.

    ``resolved_url`` and ``storage_path`` are computed per listing and never
    written back to the platform.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    travel_request_id: str | None = None
    uploaded_by: str | None = None
    file_name: str
    file_url: str
    file_type: str
    file_size: int = 0
    category: str = "other"
    link_url: str | None = None
    notes: str | None = None
    uploaded_at: datetime | None = None

    resolved_url: str | None = None
    storage_path: str | None = None

    @property
    def is_link(self) -> bool:
        return self.file_type == LINK_FILE_TYPE

    @computed_field
    @property
    def display_url(self) -> str:
        if self.is_link:
            return self.link_url or self.file_url
        return self.resolved_url or self.file_url


def record_from_row(row: dict[str, Any]) -> AttachmentRecord:
    return AttachmentRecord.model_validate(row)


class UploadProgress(BaseModel):
    file_name: str
    percent: int = Field(ge=0, le=100)
    position: int
    total: int


class PendingFileView(BaseModel):
    index: int
    file_name: str
    content_type: str
    size_bytes: int
    category: str


class PendingLinkView(BaseModel):
    index: int
    url: str
    category: str
    note: str | None = None


class WorkspaceView(BaseModel):
    id: str
    travel_request_id: str | None
    uploading: bool
    pending_files: list[PendingFileView]
    pending_links: list[PendingLinkView]
    attachments: list[AttachmentRecord]


class WorkspaceResponse(BaseModel):
    workspace: WorkspaceView
    notices: list[Notice] = Field(default_factory=list)
    progress: list[UploadProgress] = Field(default_factory=list)


class CreateWorkspaceInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    travel_request_id: str | None = None


class AddLinkInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str = Field(max_length=2048)
    category: AttachmentCategory = DEFAULT_CATEGORY
    note: str | None = Field(default=None, max_length=1000)


class CommitInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    travel_request_id: str
    notify: bool = False


class SavePendingInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    travel_request_id: str | None = None
