from __future__ import annotations

from collections.abc import AsyncIterable
from dataclasses import dataclass
from typing import Any

from .client import PlatformClient


@dataclass(frozen=True)
class PlatformSession:
    """A platform client bound to one signed-in user.

    Row-level security on the platform side decides what this user may read
    or write; the session only forwards the user's access token.
    """

    client: PlatformClient
    access_token: str
    user_id: str

    async def select(
        self,
        table: str,
        *,
        filters: dict[str, Any] | None = None,
        order: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        return await self.client.select(
            table,
            access_token=self.access_token,
            filters=filters,
            order=order,
            descending=descending,
        )

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        return await self.client.insert(table, row, access_token=self.access_token)

    async def insert_many(self, table: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return await self.client.insert_many(table, rows, access_token=self.access_token)

    async def update(self, table: str, row_id: str, values: dict[str, Any]) -> list[dict[str, Any]]:
        return await self.client.update(table, row_id, values, access_token=self.access_token)

    async def delete(self, table: str, row_id: str) -> None:
        await self.client.delete(table, row_id, access_token=self.access_token)

    async def upload_object(
        self,
        bucket: str,
        path: str,
        content: AsyncIterable[bytes],
        *,
        content_type: str,
        content_length: int | None = None,
        upsert: bool = False,
    ) -> dict[str, Any]:
        return await self.client.upload_object(
            bucket,
            path,
            content,
            access_token=self.access_token,
            content_type=content_type,
            content_length=content_length,
            upsert=upsert,
        )

    async def remove_objects(self, bucket: str, paths: list[str]) -> None:
        await self.client.remove_objects(bucket, paths, access_token=self.access_token)

    async def create_signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        return await self.client.create_signed_url(
            bucket,
            path,
            expires_in,
            access_token=self.access_token,
        )

    async def invoke(self, name: str, body: dict[str, Any] | None = None) -> Any:
        return await self.client.invoke(name, body, access_token=self.access_token)
