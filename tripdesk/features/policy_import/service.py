from __future__ import annotations

import io
import logging
from typing import Any

import pandas as pd

from tripdesk.core.config import get_settings
from tripdesk.platform import PlatformSession

from . import tables
from .errors import ImportFormatError, NoValidRulesError
from .extractors import detect_format, docx_text, parse_table, pdf_pages, rules_from_text
from .remote import extract_from_pages, extract_from_text
from .rows import rule_from_mapping
from .types import ImportFormat, ImportKind, ImportRulesResult, ParsedRule, ParseResult

logger = logging.getLogger(__name__)

RULES_TABLE = "travel_policy_rules"
RESTRICTIONS_TABLE = "travel_policy_restrictions"
CUSTOM_RULES_TABLE = "custom_travel_rules"
GRADES_TABLE = "employee_grades"

_TABLE_BY_KIND: dict[ImportKind, str] = {
    ImportKind.CATEGORY_RULES: RULES_TABLE,
    ImportKind.RESTRICTIONS: RESTRICTIONS_TABLE,
    ImportKind.CUSTOM_RULES: CUSTOM_RULES_TABLE,
}

TEMPLATE_FILE_NAME = "policy_rules_template.xlsx"


def _result(file_name: str, source_format: ImportFormat, rules: list[ParsedRule]) -> ParseResult:
    valid = sum(1 for rule in rules if rule.is_valid)
    return ParseResult(
        file_name=file_name,
        source_format=source_format,
        rules=rules,
        valid_count=valid,
        invalid_count=len(rules) - valid,
    )


async def extract(session: PlatformSession, file_name: str, data: bytes) -> ParseResult:
    """Turn an uploaded policy document into parsed, validated rules."""
    source_format = detect_format(file_name)
    if not data:
        raise ImportFormatError(tables.ERROR_EMPTY_FILE)

    if source_format in {ImportFormat.XLSX, ImportFormat.XLS, ImportFormat.CSV}:
        rules = parse_table(data, source_format)
    elif source_format == ImportFormat.PDF:
        pages = pdf_pages(data, max_pages=get_settings().policy_ocr_max_pages)
        rules = await extract_from_pages(session, pages, source_format=source_format)
    else:
        text = docx_text(data)
        if not text:
            raise ImportFormatError(tables.ERROR_EMPTY_FILE)
        rules = rules_from_text(text)
        if not rules:
            logger.info("No rule lines found in %s; using remote extraction.", file_name)
            rules = await extract_from_text(session, text, source_format=source_format)

    result = _result(file_name, source_format, rules)
    logger.info(
        "Parsed %s: %d valid, %d invalid rule(s).",
        file_name,
        result.valid_count,
        result.invalid_count,
    )
    return result


async def _grade_ids(session: PlatformSession, organization_id: str) -> dict[str, str]:
    rows = await session.select(
        GRADES_TABLE,
        filters={"organization_id": organization_id, "is_active": True},
        order="level",
    )
    return {str(row["name"]).strip().lower(): str(row["id"]) for row in rows if row.get("name")}


def _notes_with_grade(rule: ParsedRule, grade_id: str | None) -> str | None:
    if rule.grade and grade_id is None:
        grade_note = f"דרגה: {rule.grade}"
        return f"{rule.notes} ({grade_note})" if rule.notes else grade_note
    return rule.notes


def _rule_label(rule: ParsedRule) -> str:
    label = tables.CATEGORY_LABELS.get(rule.category or "", rule.category or "")
    if rule.max_amount is not None:
        return f"{label} - {rule.max_amount:g} {rule.currency}"
    return label


def build_row(
    kind: ImportKind,
    rule: ParsedRule,
    *,
    organization_id: str,
    user_id: str,
    grade_id: str | None,
) -> dict[str, Any]:
    if kind == ImportKind.CATEGORY_RULES:
        return {
            "organization_id": organization_id,
            "category": rule.category,
            "grade_id": grade_id,
            "max_amount": rule.max_amount,
            "currency": rule.currency,
            "destination_type": rule.destination_type,
            "per_type": rule.per_type,
            "notes": _notes_with_grade(rule, grade_id),
            "is_active": True,
            "created_by": user_id,
        }
    if kind == ImportKind.RESTRICTIONS:
        return {
            "organization_id": organization_id,
            "name": _rule_label(rule),
            "description": rule.notes,
            "category": rule.category,
            "keywords": [],
            "action_type": tables.RESTRICTION_DEFAULT_ACTION,
            "is_active": True,
            "created_by": user_id,
        }
    return {
        "organization_id": organization_id,
        "rule_name": _rule_label(rule),
        "description": rule.notes,
        "condition_json": {
            "category": rule.category,
            "max_amount": rule.max_amount,
            "currency": rule.currency,
            "destination_type": rule.destination_type,
            "per_type": rule.per_type,
        },
        "action_type": tables.CUSTOM_RULE_DEFAULT_ACTION,
        "applies_to_grades": [grade_id] if grade_id else None,
        "priority": 0,
        "is_active": True,
        "created_by": user_id,
    }


async def import_rules(
    session: PlatformSession,
    kind: ImportKind,
    organization_id: str,
    rules: list[ParsedRule],
) -> ImportRulesResult:
    # Re-validate; the payload comes from the client.
    valid_rules: list[ParsedRule] = []
    for rule in rules:
        checked = rule_from_mapping(rule.model_dump())
        if rule.is_valid and checked.is_valid:
            valid_rules.append(checked)
    if not valid_rules:
        raise NoValidRulesError("אין חוקים תקינים לייבוא")

    grade_ids: dict[str, str] = {}
    if any(rule.grade for rule in valid_rules) and kind != ImportKind.RESTRICTIONS:
        grade_ids = await _grade_ids(session, organization_id)

    rows = [
        build_row(
            kind,
            rule,
            organization_id=organization_id,
            user_id=session.user_id,
            grade_id=grade_ids.get((rule.grade or "").strip().lower()),
        )
        for rule in valid_rules
    ]
    await session.insert_many(_TABLE_BY_KIND[kind], rows)
    logger.info("Imported %d %s row(s) for organization %s.", len(rows), kind.value, organization_id)
    return ImportRulesResult(
        kind=kind,
        imported=len(rows),
        skipped_invalid=len(rules) - len(valid_rules),
    )


def build_template_workbook() -> bytes:
    frame = pd.DataFrame(list(tables.TEMPLATE_EXAMPLE_ROWS), columns=list(tables.TEMPLATE_HEADERS))
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=tables.TEMPLATE_SHEET_NAME, index=False)
    return buffer.getvalue()
