from __future__ import annotations

import base64
import io
import logging
import re
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from xml.etree import ElementTree as ET

import pandas as pd

from . import tables
from .errors import ImportFormatError
from .rows import build_rule, rules_from_table
from .types import ImportFormat, ParsedRule

logger = logging.getLogger(__name__)

_WORD_NS = {"w": "http://schemas.openxmlformats.org/wordprocessingml/2006/main"}
_PAGE_IMAGE_QUALITY = 95

_AMOUNT_IN_LINE_RE = re.compile(r"(\d{1,3}(?:,\d{3})+|\d+)(?:\.(\d+))?")
_GRADE_IN_LINE_RE = re.compile(r"(?:דרגה|grade|רמה)\s*[:\-]?\s*([^\s,;|]+)", re.IGNORECASE)


@dataclass
class DocumentPage:
    number: int
    text: str = ""
    images: list[str] = field(default_factory=list)


def detect_format(filename: str | None) -> ImportFormat:
    suffix = Path(filename or "").suffix.lower()
    if suffix in {".xlsx", ".xlsm"}:
        return ImportFormat.XLSX
    if suffix == ".csv":
        return ImportFormat.CSV
    if suffix == ".pdf":
        return ImportFormat.PDF
    if suffix == ".docx":
        return ImportFormat.DOCX
    if suffix == ".xls":
        return ImportFormat.XLS
    if suffix == ".doc":
        raise ImportFormatError(tables.ERROR_LEGACY_WORD)
    raise ImportFormatError(tables.ERROR_UNSUPPORTED_FILE)


def _frame_rows(frame: pd.DataFrame) -> list[list[Any]]:
    return [list(row) for row in frame.itertuples(index=False, name=None)]


_EXCEL_ENGINES = {ImportFormat.XLSX: "openpyxl", ImportFormat.XLS: "xlrd"}


def _load_excel_rows(payload: bytes, source_format: ImportFormat) -> list[list[Any]]:
    try:
        frame = pd.read_excel(
            io.BytesIO(payload),
            sheet_name=0,
            header=None,
            dtype=object,
            engine=_EXCEL_ENGINES[source_format],
            keep_default_na=False,
        )
    except Exception as exc:
        raise ImportFormatError(f"Could not parse {source_format.value.upper()} file: {exc}") from exc
    return _frame_rows(frame)


def _load_csv_rows(payload: bytes) -> list[list[Any]]:
    if not payload.strip():
        raise ImportFormatError(tables.ERROR_EMPTY_FILE)
    try:
        frame = pd.read_csv(
            io.BytesIO(payload),
            header=None,
            dtype=object,
            keep_default_na=False,
            encoding="utf-8-sig",
            skip_blank_lines=True,
        )
    except Exception as exc:
        raise ImportFormatError(f"Could not parse CSV file: {exc}") from exc
    return _frame_rows(frame)


def parse_table(payload: bytes, source_format: ImportFormat) -> list[ParsedRule]:
    if source_format in _EXCEL_ENGINES:
        return rules_from_table(_load_excel_rows(payload, source_format))
    if source_format == ImportFormat.CSV:
        return rules_from_table(_load_csv_rows(payload))
    raise ImportFormatError(f"Unsupported table format '{source_format.value}'.")


def docx_text(payload: bytes) -> str:
    """Paragraph and table-cell text of a Word document, one paragraph per line."""
    try:
        with zipfile.ZipFile(io.BytesIO(payload)) as zf:
            root = ET.fromstring(zf.read("word/document.xml"))
    except (zipfile.BadZipFile, KeyError, ET.ParseError) as exc:
        raise ImportFormatError(f"Could not read Word document: {exc}") from exc

    lines: list[str] = []
    for paragraph in root.iter(f"{{{_WORD_NS['w']}}}p"):
        parts = [node.text or "" for node in paragraph.iter(f"{{{_WORD_NS['w']}}}t")]
        line = "".join(parts).strip()
        if line:
            lines.append(line)
    return "\n".join(lines)


def _find_keyword(line: str, mapping: dict[str, str]) -> str | None:
    lowered = line.lower()
    # Longest synonym first: "ליום" before "יום".
    for keyword in sorted(mapping, key=len, reverse=True):
        if keyword in lowered:
            return keyword
    return None


def _find_amount(line: str) -> str | None:
    amounts = []
    for match in _AMOUNT_IN_LINE_RE.finditer(line):
        whole, fraction = match.groups()
        text = whole.replace(",", "") + (f".{fraction}" if fraction else "")
        amounts.append(text)
    return max(amounts, key=float, default=None)


def rules_from_text(text: str) -> list[ParsedRule]:
    """Line heuristics: a line naming a category and an amount becomes a rule."""
    rules: list[ParsedRule] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        category = _find_keyword(line, tables.CATEGORY_MAP)
        amount = _find_amount(line)
        if category is None or amount is None:
            continue
        grade_match = _GRADE_IN_LINE_RE.search(line)
        rules.append(
            build_rule(
                category=category,
                grade=grade_match.group(1) if grade_match else None,
                max_amount=amount,
                currency=_find_keyword(line, tables.CURRENCY_MAP),
                destination_type=_find_keyword(line, tables.DESTINATION_MAP),
                per_type=_find_keyword(line, tables.PER_TYPE_MAP),
                notes=line,
            )
        )
    return rules


def _jpeg_base64(image_file: Any) -> str | None:
    try:
        buffer = io.BytesIO()
        image_file.image.convert("RGB").save(buffer, format="JPEG", quality=_PAGE_IMAGE_QUALITY)
    except (OSError, ValueError, NotImplementedError) as exc:
        logger.warning("Skipping undecodable PDF page image: %s", exc)
        return None
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def pdf_pages(payload: bytes, *, max_pages: int) -> list[DocumentPage]:
    from pypdf import PdfReader
    from pypdf.errors import PdfReadError

    try:
        reader = PdfReader(io.BytesIO(payload))
        source_pages = list(reader.pages[:max_pages])
    except (PdfReadError, ValueError) as exc:
        raise ImportFormatError(f"Could not parse PDF: {exc}") from exc

    pages: list[DocumentPage] = []
    for number, page in enumerate(source_pages, start=1):
        text = (page.extract_text() or "").strip()
        images: list[str] = []
        for image_file in page.images:
            encoded = _jpeg_base64(image_file)
            if encoded:
                images.append(encoded)
        if text or images:
            pages.append(DocumentPage(number=number, text=text, images=images))

    if not pages:
        raise ImportFormatError(tables.ERROR_EMPTY_FILE)
    return pages
