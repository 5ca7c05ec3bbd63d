from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status

from tripdesk.core.config import get_settings
from tripdesk.features.notifications import notify_travel_request
from tripdesk.features.shared.ids import parse_optional_uuid, parse_uuid
from tripdesk.features.shared.notices import NoticeLog
from tripdesk.platform import PlatformSession
from tripdesk.platform.deps import get_platform_session

from ..errors import (
    AttachmentNotFoundError,
    AttachmentValidationError,
    PendingItemNotFoundError,
    WorkspaceBusyError,
    WorkspaceNotFoundError,
)
from ..registry import WorkspaceRegistry, get_workspace_registry
from ..schemas import (
    DEFAULT_CATEGORY,
    AddLinkInput,
    CommitInput,
    CreateWorkspaceInput,
    FileBlob,
    SavePendingInput,
    UploadProgress,
    WorkspaceResponse,
)
from ..staging import AttachmentWorkspace

router = APIRouter(prefix="/api/attachments/workspaces", tags=["attachments"])


def _raise_http_error(exc: Exception) -> None:
    if isinstance(exc, (WorkspaceNotFoundError, PendingItemNotFoundError, AttachmentNotFoundError)):
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if isinstance(exc, WorkspaceBusyError):
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    if isinstance(exc, AttachmentValidationError):
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    raise exc


def _response(
    workspace: AttachmentWorkspace,
    notices: NoticeLog | None = None,
    progress: list[UploadProgress] | None = None,
) -> WorkspaceResponse:
    return WorkspaceResponse(
        workspace=workspace.view(),
        notices=list(notices.items) if notices else [],
        progress=progress or [],
    )


def _workspace(
    workspace_id: str,
    session: PlatformSession,
    registry: WorkspaceRegistry,
) -> AttachmentWorkspace:
    try:
        return registry.get(workspace_id, session)
    except Exception as exc:
        _raise_http_error(exc)


async def _read_upload(upload: UploadFile, *, max_size: int) -> FileBlob:
    # Stop one byte past the ceiling; the workspace rejects oversized files itself.
    total = 0
    chunks: list[bytes] = []
    while total <= max_size:
        chunk = await upload.read(1024 * 1024)
        if not chunk:
            break
        total += len(chunk)
        chunks.append(chunk)
    data = b"".join(chunks)
    return FileBlob(
        name=upload.filename or "upload",
        content_type=(upload.content_type or "").strip().lower(),
        data=data[: max_size + 1],
        declared_size=upload.size if len(data) > max_size else None,
    )


@router.post("", response_model=WorkspaceResponse, status_code=status.HTTP_201_CREATED)
async def create_workspace(
    payload: CreateWorkspaceInput,
    session: PlatformSession = Depends(get_platform_session),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
) -> WorkspaceResponse:
    parent_id = parse_optional_uuid(payload.travel_request_id, field_name="travel_request_id")
    workspace = registry.create(session, parent_id=parent_id)
    notices = NoticeLog()
    if parent_id:
        await workspace.load_attachments(notices=notices)
    return _response(workspace, notices)


@router.get("/{workspace_id}", response_model=WorkspaceResponse)
async def get_workspace(
    workspace_id: str,
    session: PlatformSession = Depends(get_platform_session),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
) -> WorkspaceResponse:
    return _response(_workspace(workspace_id, session, registry))


@router.delete("/{workspace_id}", status_code=status.HTTP_204_NO_CONTENT)
async def discard_workspace(
    workspace_id: str,
    session: PlatformSession = Depends(get_platform_session),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
) -> Response:
    try:
        registry.discard(workspace_id, session)
    except Exception as exc:
        _raise_http_error(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{workspace_id}/files", response_model=WorkspaceResponse)
async def add_files(
    workspace_id: str,
    files: list[UploadFile] = File(...),
    category: str = Form(default=DEFAULT_CATEGORY),
    session: PlatformSession = Depends(get_platform_session),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
) -> WorkspaceResponse:
    workspace = _workspace(workspace_id, session, registry)
    max_size = get_settings().attachment_max_size_bytes
    blobs = [await _read_upload(upload, max_size=max_size) for upload in files]

    notices = NoticeLog()
    progress: list[UploadProgress] = []
    try:
        await workspace.add_files(blobs, category, notices=notices, on_progress=progress.append)
    except Exception as exc:
        _raise_http_error(exc)
    return _response(workspace, notices, progress)


@router.delete("/{workspace_id}/pending-files/{index}", response_model=WorkspaceResponse)
async def remove_pending_file(
    workspace_id: str,
    index: int,
    session: PlatformSession = Depends(get_platform_session),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
) -> WorkspaceResponse:
    workspace = _workspace(workspace_id, session, registry)
    try:
        workspace.remove_file(index)
    except Exception as exc:
        _raise_http_error(exc)
    return _response(workspace)


@router.post("/{workspace_id}/pending-files/{index}/save", response_model=WorkspaceResponse)
async def save_pending_file(
    workspace_id: str,
    index: int,
    payload: SavePendingInput,
    session: PlatformSession = Depends(get_platform_session),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
) -> WorkspaceResponse:
    workspace = _workspace(workspace_id, session, registry)
    parent_id = parse_optional_uuid(payload.travel_request_id, field_name="travel_request_id")
    notices = NoticeLog()
    progress: list[UploadProgress] = []
    try:
        await workspace.save_pending_file(
            index,
            parent_id=parent_id,
            notices=notices,
            on_progress=progress.append,
        )
    except Exception as exc:
        _raise_http_error(exc)
    return _response(workspace, notices, progress)


@router.post("/{workspace_id}/links", response_model=WorkspaceResponse)
async def add_link(
    workspace_id: str,
    payload: AddLinkInput,
    session: PlatformSession = Depends(get_platform_session),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
) -> WorkspaceResponse:
    workspace = _workspace(workspace_id, session, registry)
    notices = NoticeLog()
    try:
        workspace.add_link(payload.url, payload.category, payload.note, notices=notices)
    except Exception as exc:
        _raise_http_error(exc)
    return _response(workspace, notices)


@router.delete("/{workspace_id}/pending-links/{index}", response_model=WorkspaceResponse)
async def remove_pending_link(
    workspace_id: str,
    index: int,
    session: PlatformSession = Depends(get_platform_session),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
) -> WorkspaceResponse:
    workspace = _workspace(workspace_id, session, registry)
    try:
        workspace.remove_link(index)
    except Exception as exc:
        _raise_http_error(exc)
    return _response(workspace)


@router.post("/{workspace_id}/pending-links/{index}/save", response_model=WorkspaceResponse)
async def save_pending_link(
    workspace_id: str,
    index: int,
    payload: SavePendingInput,
    session: PlatformSession = Depends(get_platform_session),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
) -> WorkspaceResponse:
    workspace = _workspace(workspace_id, session, registry)
    parent_id = parse_optional_uuid(payload.travel_request_id, field_name="travel_request_id")
    notices = NoticeLog()
    try:
        await workspace.save_pending_link(index, parent_id=parent_id, notices=notices)
    except Exception as exc:
        _raise_http_error(exc)
    return _response(workspace, notices)


@router.post("/{workspace_id}/commit", response_model=WorkspaceResponse)
async def commit_workspace(
    workspace_id: str,
    payload: CommitInput,
    session: PlatformSession = Depends(get_platform_session),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
) -> WorkspaceResponse:
    workspace = _workspace(workspace_id, session, registry)
    parent_id = parse_uuid(payload.travel_request_id, field_name="travel_request_id")
    notices = NoticeLog()
    progress: list[UploadProgress] = []
    try:
        await workspace.upload_all(parent_id, notices=notices, on_progress=progress.append)
    except Exception as exc:
        _raise_http_error(exc)

    if payload.notify:
        await notify_travel_request(session, parent_id, notices=notices)
    return _response(workspace, notices, progress)


@router.get("/{workspace_id}/attachments", response_model=WorkspaceResponse)
async def list_attachments(
    workspace_id: str,
    session: PlatformSession = Depends(get_platform_session),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
) -> WorkspaceResponse:
    workspace = _workspace(workspace_id, session, registry)
    notices = NoticeLog()
    await workspace.load_attachments(notices=notices)
    return _response(workspace, notices)


@router.delete("/{workspace_id}/attachments/{attachment_id}", response_model=WorkspaceResponse)
async def delete_attachment(
    workspace_id: str,
    attachment_id: str,
    session: PlatformSession = Depends(get_platform_session),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
) -> WorkspaceResponse:
    workspace = _workspace(workspace_id, session, registry)
    notices = NoticeLog()
    record = workspace.find_attachment(attachment_id)
    if record is None:
        await workspace.load_attachments(notices=notices)
        record = workspace.find_attachment(attachment_id)
    if record is None:
        _raise_http_error(AttachmentNotFoundError(f"Attachment '{attachment_id}' was not found."))

    await workspace.remove(record, notices=notices)
    return _response(workspace, notices)
