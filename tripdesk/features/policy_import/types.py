from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ImportKind(str, Enum):
    CATEGORY_RULES = "category_rules"
    RESTRICTIONS = "restrictions"
    CUSTOM_RULES = "custom_rules"


class ImportFormat(str, Enum):
    XLSX = "xlsx"
    XLS = "xls"
    CSV = "csv"
    PDF = "pdf"
    DOCX = "docx"


class ParsedRule(BaseModel):
    category: str | None = None
    grade: str | None = None
    max_amount: float | None = None
    currency: str | None = None
    destination_type: str | None = None
    per_type: str | None = None
    notes: str | None = None
    is_valid: bool = True
    errors: list[str] = Field(default_factory=list)


class ParseResult(BaseModel):
    file_name: str
    source_format: ImportFormat
    rules: list[ParsedRule]
    valid_count: int
    invalid_count: int


class ImportRulesInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: ImportKind
    organization_id: str
    rules: list[ParsedRule] = Field(min_length=1, max_length=1000)


class ImportRulesResult(BaseModel):
    kind: ImportKind
    imported: int
    skipped_invalid: int
