from __future__ import annotations

import logging
from typing import Any

from tripdesk.core.config import get_settings
from tripdesk.platform import PlatformError, PlatformSession

from . import tables
from .errors import ExtractionError
from .extractors import DocumentPage
from .rows import rule_from_mapping
from .types import ImportFormat, ParsedRule

logger = logging.getLogger(__name__)


def _rule_items(payload: Any) -> list[dict[str, Any]]:
    if isinstance(payload, dict):
        if payload.get("error"):
            raise ExtractionError(str(payload["error"]))
        payload = payload.get("rules")
    if not isinstance(payload, list):
        return []
    return [item for item in payload if isinstance(item, dict)]


async def _invoke(session: PlatformSession, body: dict[str, Any]) -> list[ParsedRule]:
    function_name = get_settings().policy_extraction_function
    try:
        payload = await session.invoke(function_name, body)
    except PlatformError as exc:
        raise ExtractionError(f"{tables.ERROR_EXTRACTION_FAILED}: {exc}") from exc
    return [rule_from_mapping(item) for item in _rule_items(payload)]


async def extract_from_pages(
    session: PlatformSession,
    pages: list[DocumentPage],
    *,
    source_format: ImportFormat,
) -> list[ParsedRule]:
    """Send each page to the extraction function; images win over text."""
    rules: list[ParsedRule] = []
    for page in pages:
        bodies: list[dict[str, Any]]
        if page.images:
            bodies = [{"imageBase64": image, "fileType": source_format.value} for image in page.images]
        else:
            bodies = [{"text": page.text, "fileType": source_format.value}]
        for body in bodies:
            page_rules = await _invoke(session, body)
            logger.info("Extracted %d rule(s) from page %d.", len(page_rules), page.number)
            rules.extend(page_rules)

    if not rules:
        raise ExtractionError(tables.ERROR_EXTRACTION_FAILED)
    return rules


async def extract_from_text(
    session: PlatformSession,
    text: str,
    *,
    source_format: ImportFormat,
) -> list[ParsedRule]:
    return await extract_from_pages(
        session,
        [DocumentPage(number=1, text=text)],
        source_format=source_format,
    )
