"""
DevServe — Vendor Asset Proxy Cache
=====================================

What:  Serves allow-listed third-party scripts/styles from memory, fetching each
       from its CDN the first time it is requested.
How:   VendorAllowList maps public file names to CDN URLs (with implicit
       ".map" companions); VendorCache keeps one immutable CacheEntry per URL.
Who:   Used by VendorMiddleware; one VendorCache per running server
       (app.state.vendor_cache).

Caching policy:
    - Entries never expire; the allow-list bounds how many can exist.
    - Failures are never cached; the next request simply retries.
    - Concurrent first requests for one URL share a single fetch (per-URL lock).
"""

import asyncio
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional

import httpx

from devserve.exceptions import UpstreamFetchFailedError

logger = logging.getLogger(__name__)

CACHE_CONTROL_IMMUTABLE = "public, max-age=31536000, immutable"
DEFAULT_CONTENT_TYPE = "application/octet-stream"
SOURCE_MAP_SUFFIX = ".map"


@dataclass(frozen=True)
class AllowListEntry:
    """A resolved allow-list entry: the requested key and the remote URL it proxies."""

    source_key: str
    remote_url: str


@dataclass(frozen=True)
class CacheEntry:
    """A fetched asset; immutable and reused for the process lifetime."""

    path: str
    content: bytes
    content_type: str
    headers: Mapping[str, str] = field(default_factory=dict)


class VendorAllowList:
    """Static map of public file name → remote URL."""

    def __init__(self, mapping: Mapping[str, str]):
        self._mapping: Dict[str, str] = dict(mapping)

    def resolve(self, public_key: str) -> Optional[AllowListEntry]:
        """
        Find the remote URL for `public_key`.

        "lib.js.map" without its own entry resolves through "lib.js" with
        ".map" appended to the URL. Returns None when the key is not ours.
        """
        url = self._mapping.get(public_key)
        if url is not None:
            return AllowListEntry(source_key=public_key, remote_url=url)

        if public_key.endswith(SOURCE_MAP_SUFFIX):
            base_url = self._mapping.get(public_key[: -len(SOURCE_MAP_SUFFIX)])
            if base_url is not None:
                return AllowListEntry(source_key=public_key, remote_url=base_url + SOURCE_MAP_SUFFIX)

        return None

    def __contains__(self, public_key: object) -> bool:
        return isinstance(public_key, str) and self.resolve(public_key) is not None

    def __len__(self) -> int:
        return len(self._mapping)


class VendorCache:
    """
    In-memory cache for vendor CDN assets, keyed by remote URL.

    The httpx client is created lazily unless one is injected (tests pass
    one built on httpx.MockTransport). Call aclose() on shutdown.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._entries: Dict[str, CacheEntry] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def get(self, url: str) -> Optional[CacheEntry]:
        """Cached entry for `url`, or None."""
        return self._entries.get(url)

    async def fetch(self, url: str) -> CacheEntry:
        """
        Download `url`, store it and return the new entry.

        Raises:
            UpstreamFetchFailedError: non-2xx status or transport failure.
        """
        client = self._get_client()
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            logger.error("CDN fetch for %s failed: %s", url, e)
            raise UpstreamFetchFailedError(url=url, reason=str(e) or type(e).__name__) from e

        if not response.is_success:
            logger.error("CDN fetch for %s returned %d", url, response.status_code)
            raise UpstreamFetchFailedError(
                url=url,
                upstream_status=response.status_code,
                reason=response.reason_phrase,
            )

        content = response.content
        content_type = response.headers.get("content-type") or DEFAULT_CONTENT_TYPE

        entry = CacheEntry(
            path=url,
            content=content,
            content_type=content_type,
            headers=MappingProxyType({
                "content-type": content_type,
                "cache-control": CACHE_CONTROL_IMMUTABLE,
            }),
        )
        self._entries[url] = entry

        logger.info("Cached vendor asset %s (%d bytes, %s)", url, len(content), content_type)
        return entry

    async def get_or_fetch(self, url: str) -> CacheEntry:
        """Return the cached entry for `url`, fetching it once if needed."""
        cached = self.get(url)
        if cached is not None:
            return cached

        lock = self._locks.setdefault(url, asyncio.Lock())
        async with lock:
            # Another request may have filled the entry while we waited
            cached = self.get(url)
            if cached is not None:
                return cached
            return await self.fetch(url)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this cache created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)
