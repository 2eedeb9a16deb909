"""Async HTTP transport for the Strata REST API.

Every read/write resolves to a payload ``{"count": int, "items": [...]}``
or raises ``TransportError``.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import uuid
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence
from urllib.parse import quote

import aiohttp

from ..config.settings import ApiConfig
from ..utils.errors import RetryConfig, TransportError, retry_with_backoff

logger = logging.getLogger("STRATA.Transport")

Payload = Dict[str, Any]

COLLECTIONS = {
    "space": "spaces",
    "dataset": "datasets",
    "file": "files",
    "annotation": "annotations",
    "activity": "activity",
    "bot": "bots",
    "board": "boards",
    "user": "users",
}


def join_uri(*parts: Any) -> str:
    return "/".join(quote(str(p), safe=":") for p in parts if p is not None and p != "")


def normalize_payload(data: Any) -> Payload:
    """Coerce a response body to ``{"count", "items"}``."""
    if isinstance(data, Mapping) and "items" in data:
        items = list(data.get("items") or [])
        return {**data, "count": data.get("count", len(items)), "items": items}
    if isinstance(data, list):
        return {"count": len(data), "items": data}
    if isinstance(data, Mapping) and data:
        return {"count": 1, "items": [dict(data)]}
    return {"count": 0, "items": []}


class Transport:
    """Operations the entity layer needs from a backend."""

    async def run(self, kind: str, method: str, parts: Sequence[Any], body: Optional[Mapping[str, Any]] = None) -> Payload:
        raise NotImplementedError

    async def upload_file(
        self,
        space_id: str,
        dataset_id: str,
        name: str,
        size: int,
        content_type: str,
        content: bytes,
        description: Optional[str] = None,
    ) -> Payload:
        raise NotImplementedError

    async def get_file_content(self, space_id: str, dataset_id: str, file_id: str, compress: bool = True) -> bytes:
        raise NotImplementedError

    async def get_user(self, user_id: str) -> Payload:
        raise NotImplementedError

    async def get_prefs(self) -> Dict[str, Any]:
        raise NotImplementedError

    async def put_prefs(self, prefs: Mapping[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError


class ApiClient(Transport):
    """aiohttp based client.

    Args:
        config: Transport settings (host, base path, token, timeout)
        session: Optional externally owned ``aiohttp.ClientSession``
    """

    def __init__(self, config: Optional[ApiConfig] = None, session: Optional[aiohttp.ClientSession] = None):
        self.config = config or ApiConfig()
        self._session = session
        self._owns_session = session is None
        self._session_id = uuid.uuid4().hex[:12]
        self._token = self.config.token
        self._user_cache: Dict[str, Payload] = {}
        self._retry = RetryConfig(max_attempts=self.config.max_retries)

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def set_api_token(self, token: Optional[str]) -> None:
        self._token = token

    def api_url(self) -> str:
        return self.config.url

    def url(self, kind: str, parts: Iterable[Any] = ()) -> str:
        collection = COLLECTIONS.get(kind, f"{kind}s")
        return f"{self.api_url()}/{join_uri(collection, *parts)}"

    def headers(self, content_type: str = "application/json") -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": content_type,
            "X-Request-Id": f"{self._session_id}-{secrets.token_hex(4)}",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout_s)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    @staticmethod
    async def _raise_for_status(response: aiohttp.ClientResponse) -> None:
        if 200 <= response.status < 300:
            return
        message = None
        try:
            body = await response.json(content_type=None)
            if isinstance(body, Mapping):
                message = body.get("message") or body.get("error")
        except (aiohttp.ContentTypeError, ValueError):
            pass
        raise TransportError(
            response.status,
            response.reason or "",
            message,
            context={"url": str(response.url)},
        )

    async def _send(
        self,
        method: str,
        url: str,
        json_body: Any = None,
        data: Optional[bytes] = None,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        session = self._get_session()
        try:
            async with session.request(
                method,
                url,
                json=json_body,
                data=data,
                params=params,
                headers=headers or self.headers(),
            ) as response:
                await self._raise_for_status(response)
                if response.status == 204:
                    return {}
                return await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise TransportError(0, "network error", str(e), context={"url": url}) from e

    async def request(self, method: str, url: str, **kwargs: Any) -> Any:
        """Send a request; idempotent GETs retry on server and network errors."""
        if method.upper() != "GET":
            return await self._send(method, url, **kwargs)
        return await retry_with_backoff(
            self._send,
            method,
            url,
            config=self._retry,
            retry_on=(TransportError,),
            should_retry=lambda e: e.status == 0 or (e.status or 0) >= 500,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Generic CRUD
    # ------------------------------------------------------------------

    async def run(self, kind: str, method: str, parts: Sequence[Any], body: Optional[Mapping[str, Any]] = None) -> Payload:
        logger.debug(f"{method} {kind} {list(parts)}")
        data = await self.request(method, self.url(kind, parts), json_body=body)
        return await self._process(kind, normalize_payload(data))

    async def _process(self, kind: str, payload: Payload) -> Payload:
        payload = await self.resolve_user_id(payload)
        for item in payload["items"]:
            if isinstance(item.get("id"), dict):
                item["id"]["type"] = kind
            if kind == "annotation" and item.get("comments"):
                comments = await self.resolve_user_id(normalize_payload(list(item["comments"])))
                item["comments"] = comments["items"]
        return payload

    # ------------------------------------------------------------------
    # File content
    # ------------------------------------------------------------------

    async def upload_file(
        self,
        space_id: str,
        dataset_id: str,
        name: str,
        size: int,
        content_type: str,
        content: bytes,
        description: Optional[str] = None,
    ) -> Payload:
        params = {"name": name, "size": size, "content_type": content_type}
        if description:
            params["description"] = description
        data = await self.request(
            "PUT",
            f"{self.api_url()}/{join_uri('files', space_id, dataset_id, 'upload')}",
            data=content,
            params=params,
            headers=self.headers("application/octet-stream"),
        )
        return await self._process("file", normalize_payload(data))

    async def get_file_content(self, space_id: str, dataset_id: str, file_id: str, compress: bool = True) -> bytes:
        """Resolve the signed download URL, then fetch the bytes it points at."""
        target = await self.request(
            "GET",
            f"{self.api_url()}/{join_uri('files', space_id, dataset_id, file_id, 'download_url')}",
        )
        headers = dict(target.get("http_headers") or {})
        if not compress:
            headers["Accept-Encoding"] = "identity"
        session = self._get_session()
        try:
            async with session.request(
                target.get("http_method") or "GET",
                target["signed_url"],
                headers=headers,
            ) as response:
                await self._raise_for_status(response)
                return await response.read()
        except aiohttp.ClientError as e:
            raise TransportError(0, "network error", str(e), context={"file_id": file_id}) from e

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_user(self, user_id: str) -> Payload:
        if self.config.user_cache_enabled and user_id in self._user_cache:
            return self._user_cache[user_id]
        payload = normalize_payload(await self.request("GET", self.url("user", [user_id])))
        if self.config.user_cache_enabled:
            self._user_cache[user_id] = payload
        return payload

    def clear_user_cache(self) -> None:
        self._user_cache.clear()

    async def get_prefs(self) -> Dict[str, Any]:
        return await self.request("GET", self.url("user", ["me", "prefs"])) or {}

    async def put_prefs(self, prefs: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.request("PUT", self.url("user", ["me", "prefs"]), json_body=dict(prefs)) or {}

    async def resolve_user_id(
        self,
        payload: Payload,
        uid_field: str = "owner",
        result_field: str = "owner_info",
    ) -> Payload:
        """Attach display info of each item's owner under ``result_field``."""
        uids: List[str] = []
        for item in payload["items"]:
            uid = item.get(uid_field) if isinstance(item, Mapping) else None
            if uid and uid not in uids:
                uids.append(uid)
        if not uids:
            return payload

        results = await asyncio.gather(*(self.get_user(uid) for uid in uids), return_exceptions=True)
        info: Dict[str, Dict[str, Any]] = {}
        for uid, result in zip(uids, results):
            if isinstance(result, BaseException):
                logger.warning(f"Could not resolve user {uid}: {result}")
                continue
            if result.get("count", 0) > 0:
                user = result["items"][0]
                info[user.get("id", uid)] = {
                    "display_name": user.get("display_name"),
                    "photos": user.get("photos") or [],
                    "profile": user.get("profile") or {},
                    "created_at": user.get("created_at") or 0,
                }

        for item in payload["items"]:
            uid = item.get(uid_field) if isinstance(item, Mapping) else None
            if uid in info:
                item[result_field] = info[uid]
        return payload


__all__ = ["Transport", "ApiClient", "COLLECTIONS", "join_uri", "normalize_payload"]
