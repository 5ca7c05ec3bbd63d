from __future__ import annotations

from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile

from tripdesk.core.config import get_settings
from tripdesk.features.shared.ids import parse_uuid
from tripdesk.platform import PlatformError, PlatformSession
from tripdesk.platform.deps import get_platform_session

from ..errors import ExtractionError, ImportFormatError, NoValidRulesError
from ..service import TEMPLATE_FILE_NAME, build_template_workbook, extract, import_rules
from ..types import ImportRulesInput, ImportRulesResult, ParseResult

router = APIRouter(prefix="/api/policy/import", tags=["policy-import"])

_XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
_PLATFORM_UNAVAILABLE = "שירות המדיניות אינו זמין כרגע, נסו שוב מאוחר יותר"


def _raise_http_error(exc: Exception) -> None:
    if isinstance(exc, (ImportFormatError, NoValidRulesError)):
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if isinstance(exc, ExtractionError):
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if isinstance(exc, PlatformError):
        raise HTTPException(status_code=502, detail=_PLATFORM_UNAVAILABLE) from exc
    raise exc


@router.post("/parse", response_model=ParseResult)
async def parse_policy_file(
    file: UploadFile = File(...),
    session: PlatformSession = Depends(get_platform_session),
) -> ParseResult:
    max_size = get_settings().attachment_max_size_bytes
    data = await file.read(max_size + 1)
    if len(data) > max_size:
        raise HTTPException(status_code=413, detail="File is too large.")
    try:
        return await extract(session, file.filename or "", data)
    except Exception as exc:
        _raise_http_error(exc)


@router.post("", response_model=ImportRulesResult)
async def import_policy_rules(
    payload: ImportRulesInput,
    session: PlatformSession = Depends(get_platform_session),
) -> ImportRulesResult:
    organization_id = parse_uuid(payload.organization_id, field_name="organization_id")
    try:
        return await import_rules(session, payload.kind, organization_id, payload.rules)
    except Exception as exc:
        _raise_http_error(exc)


@router.get("/template")
async def download_template() -> Response:
    return Response(
        content=build_template_workbook(),
        media_type=_XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(TEMPLATE_FILE_NAME)}"},
    )
