from __future__ import annotations

import math
import re
from collections.abc import Mapping, Sequence
from typing import Any

from . import tables
from .errors import ImportFormatError
from .types import ParsedRule

_AMOUNT_CLEAN_RE = re.compile(r"[^\d.\-]")
_AMOUNT_RE = re.compile(r"-?\d+(?:\.\d+)?")


def cell_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, float):
        if math.isnan(value):
            return None
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def is_blank_row(row: Sequence[Any]) -> bool:
    return all(not (cell_text(cell) or "") for cell in row)


def normalize_headers(row: Sequence[Any]) -> list[str]:
    return [(cell_text(cell) or "").lower() for cell in row]


def parse_amount(raw: str | None) -> float | None:
    if not raw:
        return None
    matched = _AMOUNT_RE.search(_AMOUNT_CLEAN_RE.sub("", raw))
    if matched is None:
        return None
    try:
        amount = float(matched.group(0))
    except ValueError:
        return None
    return amount or None


def _lookup(mapping: Mapping[str, str], raw: str) -> str | None:
    return mapping.get(raw.strip().lower())


def build_rule(
    *,
    category: str | None = None,
    grade: str | None = None,
    max_amount: str | float | None = None,
    currency: str | None = None,
    destination_type: str | None = None,
    per_type: str | None = None,
    notes: str | None = None,
) -> ParsedRule:
    """Map raw field values onto canonical codes and validate them."""
    category_raw = (category or "").strip()
    resolved_category = _lookup(tables.CATEGORY_MAP, category_raw) or category_raw

    currency_raw = (currency or "").strip()
    resolved_currency = (
        _lookup(tables.CURRENCY_MAP, currency_raw) or currency_raw.upper() or tables.DEFAULT_CURRENCY
    )

    destination_raw = (destination_type or "").strip()
    resolved_destination = (
        _lookup(tables.DESTINATION_MAP, destination_raw) or destination_raw or tables.DEFAULT_DESTINATION
    )

    per_raw = (per_type or "").strip()
    resolved_per_type = _lookup(tables.PER_TYPE_MAP, per_raw) or per_raw or tables.DEFAULT_PER_TYPE

    if isinstance(max_amount, (int, float)) and not isinstance(max_amount, bool):
        amount = float(max_amount) or None
    else:
        amount = parse_amount(cell_text(max_amount))

    errors: list[str] = []
    if resolved_category not in tables.VALID_CATEGORIES:
        errors.append(tables.ERROR_INVALID_CATEGORY)
    if resolved_destination not in tables.VALID_DESTINATIONS:
        errors.append(tables.ERROR_INVALID_DESTINATION)
    if resolved_per_type not in tables.VALID_PER_TYPES:
        errors.append(tables.ERROR_INVALID_PER_TYPE)

    return ParsedRule(
        category=resolved_category or None,
        grade=(grade or "").strip() or None,
        max_amount=amount,
        currency=resolved_currency,
        destination_type=resolved_destination,
        per_type=resolved_per_type,
        notes=(notes or "").strip() or None,
        is_valid=not errors,
        errors=errors,
    )


def rule_from_mapping(values: Mapping[str, Any]) -> ParsedRule:
    return build_rule(
        category=cell_text(values.get("category")),
        grade=cell_text(values.get("grade")),
        max_amount=values.get("max_amount"),
        currency=cell_text(values.get("currency")),
        destination_type=cell_text(values.get("destination_type")),
        per_type=cell_text(values.get("per_type")),
        notes=cell_text(values.get("notes")),
    )


def _value_for(field_name: str, row: Sequence[Any], headers: Sequence[str]) -> str:
    for synonym in tables.HEADER_SYNONYMS[field_name]:
        index = next((i for i, header in enumerate(headers) if synonym in header), -1)
        if index == -1 or index >= len(row):
            continue
        text = cell_text(row[index])
        if text is not None:
            return text
    return ""


def parse_rule_row(row: Sequence[Any], headers: Sequence[str]) -> ParsedRule:
    return build_rule(
        category=_value_for("category", row, headers),
        grade=_value_for("grade", row, headers),
        max_amount=_value_for("max_amount", row, headers),
        currency=_value_for("currency", row, headers),
        destination_type=_value_for("destination_type", row, headers),
        per_type=_value_for("per_type", row, headers),
        notes=_value_for("notes", row, headers),
    )


def rules_from_table(rows: Sequence[Sequence[Any]]) -> list[ParsedRule]:
    """First row is the header row; blank rows are skipped."""
    if len(rows) < 2:
        raise ImportFormatError(tables.ERROR_EMPTY_FILE)

    headers = normalize_headers(rows[0])
    rules = [parse_rule_row(row, headers) for row in rows[1:] if row and not is_blank_row(row)]
    if not rules:
        raise ImportFormatError(tables.ERROR_NO_ROWS)
    return rules
