from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import unquote, urlsplit


@dataclass(frozen=True)
class StoragePath:
    """Bucket-relative object path, the current format of ``file_url``."""

    path: str


@dataclass(frozen=True)
class LegacyUrl:
    """Full object URL written by older clients; the bucket name is a path segment."""

    url: str


StoredRef = StoragePath | LegacyUrl


def parse_stored_ref(value: str) -> StoredRef:
    text = value.strip()
    if text.lower().startswith(("http://", "https://")) or "/storage/v1/" in text:
        return LegacyUrl(text)
    return StoragePath(text.lstrip("/"))


def storage_path_for(ref: StoredRef, bucket: str) -> str | None:
    if isinstance(ref, StoragePath):
        return ref.path or None

    marker = f"/{bucket}/"
    path_part = urlsplit(ref.url).path
    _, found, tail = path_part.partition(marker)
    if not found or not tail:
        return None
    return unquote(tail)


def storage_path_from_value(value: str, bucket: str) -> str | None:
    return storage_path_for(parse_stored_ref(value), bucket)
