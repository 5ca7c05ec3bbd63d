from __future__ import annotations

import io
import re
import zipfile

import pandas as pd
import pytest
from pypdf import PdfWriter

from tripdesk.features.policy_import import tables
from tripdesk.features.policy_import.errors import ExtractionError, ImportFormatError
from tripdesk.features.policy_import.extractors import DocumentPage, detect_format, docx_text, rules_from_text
from tripdesk.features.policy_import.remote import extract_from_pages
from tripdesk.features.policy_import.rows import build_rule, parse_amount, parse_rule_row
from tripdesk.features.policy_import.service import extract
from tripdesk.features.policy_import.types import ImportFormat

_DOCX_BODY = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
    "<w:body>{paragraphs}</w:body></w:document>"
)


def _docx(*lines: str) -> bytes:
    paragraphs = "".join(f"<w:p><w:r><w:t>{line}</w:t></w:r></w:p>" for line in lines)
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("[Content_Types].xml", "<Types/>")
        zf.writestr("word/document.xml", _DOCX_BODY.format(paragraphs=paragraphs))
    return buffer.getvalue()


def _xlsx(rows: list[list[object]], columns: list[str]) -> bytes:
    buffer = io.BytesIO()
    pd.DataFrame(rows, columns=columns).to_excel(buffer, index=False, engine="openpyxl")
    return buffer.getvalue()


def test_row_with_hebrew_values_is_normalized() -> None:
    headers = ["קטגוריה", "דרגה", "תקרה", "מטבע", "יעד", "לכל", "הערות"]

    rule = parse_rule_row(["לינה", "מנהל", "800", "דולר", "בינלאומי", "ליום", "עד 4 כוכבים"], headers)

    assert rule.category == "accommodation"
    assert rule.grade == "מנהל"
    assert rule.max_amount == 800
    assert rule.currency == "USD"
    assert rule.destination_type == "international"
    assert rule.per_type == "per_day"
    assert rule.notes == "עד 4 כוכבים"
    assert rule.is_valid
    assert rule.errors == []


def test_missing_optional_columns_get_defaults() -> None:
    rule = parse_rule_row(["flights", "1200"], ["category", "max amount"])

    assert rule.currency == "ILS"
    assert rule.destination_type == "all"
    assert rule.per_type == "per_trip"
    assert rule.grade is None
    assert rule.is_valid


def test_unknown_values_are_flagged_with_localized_errors() -> None:
    rule = build_rule(category="souvenirs", destination_type="moon", per_type="per hour", currency="btc")

    assert not rule.is_valid
    assert rule.errors == [
        tables.ERROR_INVALID_CATEGORY,
        tables.ERROR_INVALID_DESTINATION,
        tables.ERROR_INVALID_PER_TYPE,
    ]
    assert rule.currency == "BTC"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("₪1,500", 1500.0), ("12.5 USD", 12.5), ("", None), ("abc", None), ("0", None)],
)
def test_amount_parsing(raw: str, expected: float | None) -> None:
    assert parse_amount(raw) == expected


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("rules.xlsx", ImportFormat.XLSX),
        ("old.xls", ImportFormat.XLS),
        ("RULES.CSV", ImportFormat.CSV),
        ("policy.pdf", ImportFormat.PDF),
        ("policy.docx", ImportFormat.DOCX),
    ],
)
def test_format_detection(name: str, expected: ImportFormat) -> None:
    assert detect_format(name) == expected


@pytest.mark.parametrize(
    ("name", "message"),
    [
        ("old.doc", tables.ERROR_LEGACY_WORD),
        ("notes.txt", tables.ERROR_UNSUPPORTED_FILE),
    ],
)
def test_unsupported_formats_are_rejected(name: str, message: str) -> None:
    with pytest.raises(ImportFormatError, match=re.escape(message)):
        detect_format(name)


@pytest.mark.asyncio
async def test_excel_import_maps_hebrew_category_and_flags_unknown(fake_session) -> None:
    payload = _xlsx(
        [["לינה", 800, "USD"], ["מזכרות", 100, "ILS"], [None, None, None]],
        ["קטגוריה", "תקרה", "מטבע"],
    )

    result = await extract(fake_session, "rules.xlsx", payload)

    assert result.source_format == ImportFormat.XLSX
    assert [rule.category for rule in result.rules] == ["accommodation", "מזכרות"]
    assert result.rules[0].is_valid
    assert result.rules[0].max_amount == 800
    assert result.rules[1].is_valid is False
    assert tables.ERROR_INVALID_CATEGORY in result.rules[1].errors
    assert (result.valid_count, result.invalid_count) == (1, 1)
    assert fake_session.calls == []


@pytest.mark.asyncio
async def test_legacy_excel_is_read_with_xlrd(fake_session, monkeypatch) -> None:
    engines: list[str] = []

    def read_excel(source, **kwargs):
        engines.append(kwargs["engine"])
        return pd.DataFrame([["קטגוריה", "תקרה", "מטבע"], ["ארוחות", "120", "EUR"]])

    monkeypatch.setattr(pd, "read_excel", read_excel)

    result = await extract(fake_session, "rules.xls", b"\xd0\xcf\x11\xe0")

    assert engines == ["xlrd"]
    assert result.source_format == ImportFormat.XLS
    assert result.rules[0].category == "food"
    assert result.rules[0].max_amount == 120
    assert result.rules[0].currency == "EUR"


@pytest.mark.asyncio
async def test_csv_import_reads_english_headers(fake_session) -> None:
    payload = (
        "\ufeffcategory,grade,max amount,currency,destination,per,notes\n"
        "flights,manager,5000,$,international,per trip,\n"
        "\n"
        "food,,150,₪,domestic,per day,incl. drinks\n"
    ).encode("utf-8")

    result = await extract(fake_session, "rules.csv", payload)

    first, second = result.rules
    assert (first.category, first.grade, first.max_amount, first.currency) == ("flights", "manager", 5000, "USD")
    assert (first.destination_type, first.per_type, first.notes) == ("international", "per_trip", None)
    assert (second.category, second.currency, second.per_type, second.notes) == (
        "food",
        "ILS",
        "per_day",
        "incl. drinks",
    )


@pytest.mark.asyncio
async def test_header_only_csv_is_rejected(fake_session) -> None:
    with pytest.raises(ImportFormatError, match=tables.ERROR_EMPTY_FILE):
        await extract(fake_session, "rules.csv", "category,max amount\n".encode("utf-8"))


@pytest.mark.asyncio
async def test_blank_rows_only_is_rejected(fake_session) -> None:
    payload = "category,max amount\n , \n".encode("utf-8")

    with pytest.raises(ImportFormatError, match=tables.ERROR_NO_ROWS):
        await extract(fake_session, "rules.csv", payload)


def test_docx_text_keeps_paragraph_lines() -> None:
    assert docx_text(_docx("שורה ראשונה", "", "second line")) == "שורה ראשונה\nsecond line"


def test_text_heuristics_pick_category_amount_and_qualifiers() -> None:
    rules = rules_from_text(
        "מדיניות נסיעות לעובדים\n"
        'טיסות לחו"ל עד 5,000 דולר לנסיעה דרגה: מנהל\n'
        "לינה 800 אירו ליום\n"
    )

    assert len(rules) == 2
    flights, hotel = rules
    assert (flights.category, flights.max_amount, flights.currency) == ("flights", 5000, "USD")
    assert (flights.destination_type, flights.per_type, flights.grade) == ("international", "per_trip", "מנהל")
    assert (hotel.category, hotel.max_amount, hotel.currency, hotel.per_type) == (
        "accommodation",
        800,
        "EUR",
        "per_day",
    )
    assert hotel.destination_type == "all"


@pytest.mark.asyncio
async def test_docx_with_rule_lines_skips_remote_extraction(fake_session) -> None:
    result = await extract(fake_session, "policy.docx", _docx("לינה 800 אירו ליום"))

    assert result.source_format == ImportFormat.DOCX
    assert result.valid_count == 1
    assert fake_session.calls_of("invoke") == []


@pytest.mark.asyncio
async def test_docx_without_rule_lines_falls_back_to_remote(fake_session) -> None:
    fake_session.function_results["extract-policy-text"] = {
        "rules": [
            {"category": "food", "max_amount": 150, "currency": "ILS", "destination_type": "domestic", "per_type": "per_day"},
            {"category": "pets", "max_amount": 10},
        ]
    }

    result = await extract(fake_session, "policy.docx", _docx("הנוהל מפורט בנספח"))

    call = fake_session.calls_of("invoke")[0]
    assert call["name"] == "extract-policy-text"
    assert call["body"] == {"text": "הנוהל מפורט בנספח", "fileType": "docx"}
    assert [rule.category for rule in result.rules] == ["food", "pets"]
    assert (result.valid_count, result.invalid_count) == (1, 1)


@pytest.mark.asyncio
async def test_empty_remote_result_is_an_extraction_error(fake_session) -> None:
    fake_session.function_results["extract-policy-text"] = {"rules": []}

    with pytest.raises(ExtractionError):
        await extract(fake_session, "policy.docx", _docx("אין כאן חוקים"))


@pytest.mark.asyncio
async def test_remote_failure_is_an_extraction_error(fake_session) -> None:
    fake_session.fail("invoke")

    with pytest.raises(ExtractionError):
        await extract_from_pages(fake_session, [DocumentPage(number=1, text="x")], source_format=ImportFormat.PDF)


@pytest.mark.asyncio
async def test_page_images_are_sent_instead_of_text(fake_session) -> None:
    fake_session.function_results["extract-policy-text"] = lambda body: [
        {"category": "transportation", "max_amount": 40}
    ]
    pages = [
        DocumentPage(number=1, text="scanned", images=["aW1nMQ==", "aW1nMg=="]),
        DocumentPage(number=2, text="typed page"),
    ]

    rules = await extract_from_pages(fake_session, pages, source_format=ImportFormat.PDF)

    bodies = [call["body"] for call in fake_session.calls_of("invoke")]
    assert bodies == [
        {"imageBase64": "aW1nMQ==", "fileType": "pdf"},
        {"imageBase64": "aW1nMg==", "fileType": "pdf"},
        {"text": "typed page", "fileType": "pdf"},
    ]
    assert len(rules) == 3


@pytest.mark.asyncio
async def test_blank_pdf_is_rejected(fake_session) -> None:
    writer = PdfWriter()
    writer.add_blank_page(width=200, height=200)
    buffer = io.BytesIO()
    writer.write(buffer)

    with pytest.raises(ImportFormatError, match=tables.ERROR_EMPTY_FILE):
        await extract(fake_session, "policy.pdf", buffer.getvalue())
