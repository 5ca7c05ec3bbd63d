from __future__ import annotations

from .errors import ExtractionError, ImportFormatError, NoValidRulesError, PolicyImportError
from .extractors import detect_format, docx_text, parse_table, pdf_pages, rules_from_text
from .rows import build_rule, parse_rule_row, rules_from_table
from .service import build_template_workbook, extract, import_rules
from .types import (
    ImportFormat,
    ImportKind,
    ImportRulesInput,
    ImportRulesResult,
    ParsedRule,
    ParseResult,
)

__all__ = [
    "ExtractionError",
    "ImportFormat",
    "ImportFormatError",
    "ImportKind",
    "ImportRulesInput",
    "ImportRulesResult",
    "NoValidRulesError",
    "ParseResult",
    "ParsedRule",
    "PolicyImportError",
    "build_rule",
    "build_template_workbook",
    "detect_format",
    "docx_text",
    "extract",
    "import_rules",
    "parse_rule_row",
    "parse_table",
    "pdf_pages",
    "rules_from_table",
    "rules_from_text",
]
