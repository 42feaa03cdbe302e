"""
Client for the remote object store API.

The store only knows flat keys: it lists one level below a prefix, issues short lived signed URLs,
and creates, renames or deletes keys. None of these calls are transactional, and none are retried here;
retry policy belongs to the caller.
"""

import logging
from typing import Any

import httpx

from prefixfs.models import Listing, MetricsPage, MetricsQuery, SearchItem, SearchType


class GatewayError(Exception):
    """A failed call to the object store, either an HTTP error status or a transport failure"""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ObjectStoreGateway:
    LIST = "/list"
    FETCH = "/files/fetch"
    CREATE = "/create"
    RENAME = "/rename"
    DELETE = "/delete"
    ICON_UPLOAD = "/icons/upload"
    SEARCH = "/search"
    METRICS_PAGE = "/metrics-page"

    def __init__(self, client: httpx.AsyncClient):
        """
        :param client: an httpx client with base_url pointing at the object store API.
                       The gateway does not own the client; closing it is up to the caller.
        """
        self.client = client

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logging.error(f"{method} {url} returned {status}: {e.response.text}")
            raise GatewayError(f"{method} {url} failed with status {status}", status_code=status) from e
        except httpx.TransportError as e:
            logging.error(f"{method} {url} failed: {e!r}")
            raise GatewayError(f"{method} {url} failed: {e}") from e
        return response

    async def _json(self, method: str, url: str, **kwargs) -> Any:
        response = await self._request(method, url, **kwargs)
        return response.json() if response.content else {}

    async def _field(self, method: str, url: str, field: str, **kwargs) -> str:
        data = await self._json(method, url, **kwargs)
        if not isinstance(data, dict) or not data.get(field):
            logging.error(f"{method} {url} returned no {field!r}: {data!r}")
            raise GatewayError(f"{method} {url} returned no {field!r}")
        return data[field]

    async def list_prefix(self, prefix: str) -> Listing:
        """List one level below prefix"""
        data = await self._json("POST", self.LIST, json={"prefix": prefix})
        return Listing.model_validate(data)

    async def fetch_url(self, key: str) -> str:
        """Get a short lived signed URL for a single object. Not batchable."""
        return await self._field("POST", self.FETCH, "url", json={"key": key})

    async def create(self, prefix: str, name: str) -> None:
        await self._request("POST", self.CREATE, json={"prefix": prefix, "name": name})

    async def rename(self, old_path: str, new_name: str) -> None:
        await self._request("PUT", self.RENAME, json={"oldPath": old_path, "newName": new_name})

    async def delete(self, path: str) -> None:
        # httpx.AsyncClient.delete does not take a body
        await self._request("DELETE", self.DELETE, json={"path": path})

    async def icon_upload_url(self, item_path: str, icon_type: str) -> str:
        """Get a signed URL to PUT a custom icon for a folder or file"""
        return await self._field("POST", self.ICON_UPLOAD, "iconUrl", json={"itemPath": item_path, "iconType": icon_type})

    async def search(self, q: str, type: SearchType = "all", limit: int = 100) -> list[SearchItem]:
        data = await self._json("POST", self.SEARCH, json={"q": q, "type": type, "limit": limit})
        return [SearchItem.model_validate(item) for item in data.get("items", [])]

    async def metrics_page(self, cursor: str | None, limit: int, query: MetricsQuery | None = None) -> MetricsPage:
        """One page of the user metrics listing. The cursor can only go forward."""
        params: dict[str, Any] = {"limit": limit}
        if cursor is not None:
            params["cursor"] = cursor
        if query is not None:
            params.update(query.as_params())
        data = await self._json("GET", self.METRICS_PAGE, params=params)
        return MetricsPage.model_validate(data)
