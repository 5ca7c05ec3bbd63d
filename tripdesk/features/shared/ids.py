from __future__ import annotations

from uuid import UUID

from fastapi import HTTPException


def parse_uuid(value: str, *, field_name: str) -> str:
    """Validate a platform row id and return it in canonical string form."""
    try:
        return str(UUID(value.strip()))
    except (AttributeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"Invalid {field_name}.") from exc


def parse_optional_uuid(value: str | None, *, field_name: str) -> str | None:
    if value is None or not value.strip():
        return None
    return parse_uuid(value, field_name=field_name)
