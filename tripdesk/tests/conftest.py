from __future__ import annotations

from collections.abc import AsyncIterable
from typing import Any

import pytest

from tripdesk.platform import PlatformError

USER_ID = "6f1c1d7e-8a43-4a63-9f35-6f5a1b0c2d11"
PARENT_ID = "0b7c2b8e-3e0a-4c7e-9b1f-0e4a8d2f7c55"


class FakePlatformSession:
    """In-memory stand-in for ``PlatformSession`` that records every call."""

    def __init__(self, user_id: str = USER_ID):
        self.user_id = user_id
        self.access_token = "token-1"
        self.client = None
        self.calls: list[tuple[str, Any]] = []
        self.rows: dict[str, list[dict[str, Any]]] = {}
        self.objects: dict[str, bytes] = {}
        self.failures: dict[str, Exception] = {}
        self.function_results: dict[str, Any] = {}
        self._next_id = 0

    def fail(self, operation: str, exc: Exception | None = None) -> None:
        self.failures[operation] = exc or PlatformError(f"{operation} failed", status_code=500)

    def _check(self, operation: str) -> None:
        exc = self.failures.get(operation)
        if exc is not None:
            raise exc

    def calls_of(self, operation: str) -> list[Any]:
        return [args for name, args in self.calls if name == operation]

    async def select(self, table, *, filters=None, order=None, descending=False):
        self.calls.append(("select", {"table": table, "filters": filters, "order": order}))
        self._check("select")
        rows = [
            row
            for row in self.rows.get(table, [])
            if all(row.get(key) == value for key, value in (filters or {}).items())
        ]
        if order:
            rows.sort(key=lambda row: str(row.get(order) or ""), reverse=descending)
        return [dict(row) for row in rows]

    async def insert(self, table, row):
        self.calls.append(("insert", {"table": table, "row": row}))
        self._check("insert")
        self._next_id += 1
        stored = {"id": f"row-{self._next_id}", **row}
        self.rows.setdefault(table, []).append(stored)
        return dict(stored)

    async def insert_many(self, table, rows):
        self.calls.append(("insert_many", {"table": table, "rows": rows}))
        self._check("insert_many")
        self.rows.setdefault(table, []).extend(rows)
        return rows

    async def delete(self, table, row_id):
        self.calls.append(("delete", {"table": table, "id": row_id}))
        self._check("delete")
        self.rows[table] = [row for row in self.rows.get(table, []) if row.get("id") != row_id]

    async def upload_object(
        self,
        bucket: str,
        path: str,
        content: AsyncIterable[bytes],
        *,
        content_type: str,
        content_length: int | None = None,
        upsert: bool = False,
    ):
        chunks = [chunk async for chunk in content]
        self.calls.append(
            ("upload", {"bucket": bucket, "path": path, "content_type": content_type, "upsert": upsert})
        )
        self._check("upload")
        self.objects[path] = b"".join(chunks)
        return {"Key": f"{bucket}/{path}"}

    async def remove_objects(self, bucket, paths):
        self.calls.append(("remove_objects", {"bucket": bucket, "paths": list(paths)}))
        self._check("remove_objects")
        for path in paths:
            self.objects.pop(path, None)

    async def create_signed_url(self, bucket, path, expires_in):
        self.calls.append(("sign", {"bucket": bucket, "path": path, "expires_in": expires_in}))
        self._check("sign")
        return f"https://platform.test/storage/v1/object/sign/{bucket}/{path}?token=t"

    async def invoke(self, name, body=None):
        self.calls.append(("invoke", {"name": name, "body": body}))
        self._check("invoke")
        result = self.function_results.get(name)
        if callable(result):
            return result(body)
        return result


@pytest.fixture
def fake_session() -> FakePlatformSession:
    return FakePlatformSession()


@pytest.fixture
def parent_id() -> str:
    return PARENT_ID
