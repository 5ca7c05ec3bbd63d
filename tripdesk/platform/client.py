from __future__ import annotations

import logging
from collections.abc import AsyncIterable
from typing import Any
from urllib.parse import quote

import httpx

from .errors import PlatformAuthError, PlatformError, PlatformTransportError

logger = logging.getLogger(__name__)

_JSON_HEADERS = {"Content-Type": "application/json"}


def _quote_path(path: str) -> str:
    return quote(path.lstrip("/"), safe="/")


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        text = response.text.strip()
        return text or f"HTTP {response.status_code}"
    if isinstance(payload, dict):
        for key in ("message", "error_description", "msg", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return f"HTTP {response.status_code}"


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise PlatformError(
            f"Platform returned a non-JSON body for {response.request.method} {response.request.url.path}.",
            status_code=response.status_code,
        ) from exc


def _eq_filters(filters: dict[str, Any] | None) -> dict[str, str]:
    params: dict[str, str] = {}
    for column, value in (filters or {}).items():
        if value is None:
            params[column] = "is.null"
        elif isinstance(value, bool):
            params[column] = f"eq.{str(value).lower()}"
        else:
            params[column] = f"eq.{value}"
    return params


class PlatformClient:
    """Thin async client for the backend platform's REST surfaces.

    Tables go through the PostgREST endpoint, objects through the storage API,
    named server-side functions through the functions gateway and sign-in
    through the auth API. Every call either returns the decoded payload or
    raises ``PlatformError``; nothing here spans more than one request.
    """

    def __init__(
        self,
        *,
        base_url: str,
        anon_key: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(
        self,
        access_token: str | None,
        extra: dict[str, str] | None = None,
    ) -> dict[str, str]:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {access_token or self.anon_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        *,
        access_token: str | None,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method,
                url,
                headers=self._headers(access_token, headers),
                **kwargs,
            )
        except httpx.TimeoutException as exc:
            raise PlatformTransportError(f"request_timeout: {method} {url}") from exc
        except httpx.HTTPError as exc:
            raise PlatformTransportError(f"network error: {exc}") from exc

        if response.is_error:
            message = _error_message(response)
            logger.debug("Platform %s %s failed with %s: %s", method, url, response.status_code, message)
            if response.status_code in {401, 403}:
                raise PlatformAuthError(message, status_code=response.status_code)
            raise PlatformError(message, status_code=response.status_code)
        return response

    # Tables

    async def select(
        self,
        table: str,
        *,
        access_token: str | None,
        filters: dict[str, Any] | None = None,
        columns: str = "*",
        order: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        params = {"select": columns, **_eq_filters(filters)}
        if order:
            params["order"] = f"{order}.{'desc' if descending else 'asc'}"
        response = await self._request(
            "GET",
            f"/rest/v1/{table}",
            access_token=access_token,
            params=params,
        )
        payload = _json_body(response)
        return payload if isinstance(payload, list) else []

    async def insert(
        self,
        table: str,
        row: dict[str, Any],
        *,
        access_token: str | None,
    ) -> dict[str, Any]:
        rows = await self.insert_many(table, [row], access_token=access_token)
        if not rows:
            raise PlatformError(f"Insert into '{table}' returned no row.")
        return rows[0]

    async def insert_many(
        self,
        table: str,
        rows: list[dict[str, Any]],
        *,
        access_token: str | None,
    ) -> list[dict[str, Any]]:
        if not rows:
            return []
        response = await self._request(
            "POST",
            f"/rest/v1/{table}",
            access_token=access_token,
            headers={**_JSON_HEADERS, "Prefer": "return=representation"},
            json=rows,
        )
        payload = _json_body(response)
        return payload if isinstance(payload, list) else [payload]

    async def update(
        self,
        table: str,
        row_id: str,
        values: dict[str, Any],
        *,
        access_token: str | None,
    ) -> list[dict[str, Any]]:
        response = await self._request(
            "PATCH",
            f"/rest/v1/{table}",
            access_token=access_token,
            headers={**_JSON_HEADERS, "Prefer": "return=representation"},
            params={"id": f"eq.{row_id}"},
            json=values,
        )
        payload = _json_body(response)
        return payload if isinstance(payload, list) else []

    async def delete(
        self,
        table: str,
        row_id: str,
        *,
        access_token: str | None,
    ) -> None:
        await self._request(
            "DELETE",
            f"/rest/v1/{table}",
            access_token=access_token,
            params={"id": f"eq.{row_id}"},
        )

    # Storage

    async def upload_object(
        self,
        bucket: str,
        path: str,
        content: AsyncIterable[bytes],
        *,
        access_token: str | None,
        content_type: str,
        content_length: int | None = None,
        upsert: bool = False,
    ) -> dict[str, Any]:
        """POST raw bytes straight to the storage endpoint.

        The body is consumed as a stream so the caller's iterator observes
        every chunk as it is written to the socket.
        """
        headers = {
            "Content-Type": content_type or "application/octet-stream",
            "x-upsert": "true" if upsert else "false",
        }
        if content_length is not None:
            headers["Content-Length"] = str(content_length)
        response = await self._request(
            "POST",
            f"/storage/v1/object/{bucket}/{_quote_path(path)}",
            access_token=access_token,
            headers=headers,
            content=content,
        )
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        return payload if isinstance(payload, dict) else {}

    async def remove_objects(
        self,
        bucket: str,
        paths: list[str],
        *,
        access_token: str | None,
    ) -> None:
        await self._request(
            "DELETE",
            f"/storage/v1/object/{bucket}",
            access_token=access_token,
            headers=_JSON_HEADERS,
            json={"prefixes": paths},
        )

    async def create_signed_url(
        self,
        bucket: str,
        path: str,
        expires_in: int,
        *,
        access_token: str | None,
    ) -> str:
        response = await self._request(
            "POST",
            f"/storage/v1/object/sign/{bucket}/{_quote_path(path)}",
            access_token=access_token,
            headers=_JSON_HEADERS,
            json={"expiresIn": expires_in},
        )
        payload = _json_body(response)
        if not isinstance(payload, dict):
            payload = {}
        signed = payload.get("signedURL") or payload.get("signedUrl")
        if not isinstance(signed, str) or not signed:
            raise PlatformError(f"Storage returned no signed URL for '{path}'.")
        if signed.startswith("http"):
            return signed
        return f"{self.base_url}/storage/v1{signed if signed.startswith('/') else '/' + signed}"

    def public_url(self, bucket: str, path: str) -> str:
        """URL of an object in a publicly readable bucket; nothing is requested."""
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{_quote_path(path)}"

    # Functions

    async def invoke(
        self,
        name: str,
        body: dict[str, Any] | None = None,
        *,
        access_token: str | None,
    ) -> Any:
        response = await self._request(
            "POST",
            f"/functions/v1/{name}",
            access_token=access_token,
            headers=_JSON_HEADERS,
            json=body or {},
        )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    # Auth

    async def sign_in_with_password(self, email: str, password: str) -> dict[str, Any]:
        response = await self._request(
            "POST",
            "/auth/v1/token",
            access_token=None,
            headers=_JSON_HEADERS,
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        payload = _json_body(response)
        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise PlatformError("Sign-in returned no session.", status_code=response.status_code)
        return payload

    async def get_user(self, access_token: str) -> dict[str, Any]:
        response = await self._request("GET", "/auth/v1/user", access_token=access_token)
        payload = _json_body(response)
        if not isinstance(payload, dict) or not payload.get("id"):
            raise PlatformAuthError("Access token did not resolve to a user.", status_code=401)
        return payload
