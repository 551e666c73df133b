"""HTTP retrieval of raw JSON payloads."""

from __future__ import annotations

from typing import Any, List, Optional

import httpx

from app.core.config import DataSource, settings
from app.core.errors import FetchError
from app.core.logging import get_logger

log = get_logger("ingestion.fetcher")

SUPPORTED_TYPES = {"json"}


class JSONFetcher:
    """Fetches a source URL and returns its payload as a list of items.

    A bare JSON object counts as a single item; an array is returned as is.
    Any transport error, timeout, non-2xx status, undecodable body, scalar
    payload or unsupported source type raises FetchError. No size limit is
    applied to the body.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None):
        self._client = client
        self.timeout = timeout if timeout is not None else settings.FETCH_TIMEOUT_SECONDS

    async def fetch(self, source: DataSource) -> List[Any]:
        if source.type.lower() not in SUPPORTED_TYPES:
            raise FetchError(source.name, f"unsupported source type '{source.type}'")

        log.info(f"Fetching {source.name} from {source.url}")
        try:
            if self._client is not None:
                resp = await self._client.get(source.url, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    resp = await client.get(source.url)
            resp.raise_for_status()
            payload = resp.json()
        except httpx.TimeoutException as exc:
            raise FetchError(source.name, f"timed out after {self.timeout}s") from exc
        except httpx.HTTPStatusError as exc:
            raise FetchError(source.name, f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise FetchError(source.name, f"request failed: {exc}") from exc
        except ValueError as exc:
            raise FetchError(source.name, f"invalid JSON payload: {exc}") from exc

        if isinstance(payload, dict):
            items = [payload]
        elif isinstance(payload, list):
            items = payload
        else:
            raise FetchError(source.name, f"expected a JSON object or array, got {type(payload).__name__}")

        log.info(f"Fetched {len(items)} items from {source.name}")
        return items
