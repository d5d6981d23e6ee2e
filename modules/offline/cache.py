"""Offline cache strategy for portal assets.

install() pre-populates the current cache with the static shell,
activate() drops caches from older versions, and fetch() answers GET
requests network first, falling back to the cache when the network fails.

API and auth endpoints are never written to the cache. Cache writes are
best-effort: a failing write is logged and the network response is
still returned.
"""
import logging
from typing import Optional
from urllib.parse import urlsplit

import httpx

from common.config import OfflineConfig, get_config

logger = logging.getLogger(__name__)

API_PATH_PREFIXES = ("/api/", "/auth/", "/functions/", "/rest/")
ROOT_DOCUMENT = "/"
OFFLINE_STATUS = 408
OFFLINE_MESSAGE = "Offline - Resource not available"


def _copy(response: httpx.Response, request: Optional[httpx.Request] = None) -> httpx.Response:
    """Detached copy of an already-read response."""
    return httpx.Response(
        status_code=response.status_code,
        headers=response.headers,
        content=response.content,
        request=request or response.request,
    )


class ResponseCache:
    """One named cache: GET responses keyed by URL."""

    def __init__(self, name: str):
        self.name = name
        self._entries: dict[str, httpx.Response] = {}

    def put(self, url: str, response: httpx.Response) -> None:
        self._entries[url] = _copy(response)

    def match(self, url: str) -> Optional[httpx.Response]:
        cached = self._entries.get(url)
        return _copy(cached) if cached is not None else None

    def urls(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class CacheStorage:
    """Named caches, in the order they were opened."""

    def __init__(self):
        self._caches: dict[str, ResponseCache] = {}

    def open(self, name: str) -> ResponseCache:
        if name not in self._caches:
            self._caches[name] = ResponseCache(name)
        return self._caches[name]

    def keys(self) -> list[str]:
        return list(self._caches)

    def delete(self, name: str) -> bool:
        return self._caches.pop(name, None) is not None

    def match(self, url: str) -> Optional[httpx.Response]:
        """First cached response for url across all caches."""
        for cache in self._caches.values():
            response = cache.match(url)
            if response is not None:
                return response
        return None


def is_navigation(request: httpx.Request) -> bool:
    """Whether the request loads a page (as opposed to a sub-resource)."""
    if request.headers.get("sec-fetch-mode") == "navigate":
        return True
    return "text/html" in request.headers.get("accept", "")


class OfflineCache:
    """Network-first fetch strategy with a versioned cache fallback."""

    def __init__(self, origin: str, client: httpx.AsyncClient,
                 storage: Optional[CacheStorage] = None,
                 config: Optional[OfflineConfig] = None):
        self.origin = origin.rstrip("/")
        self.client = client
        self.storage = storage if storage is not None else CacheStorage()
        self.config = config or get_config().offline

    @property
    def cache_name(self) -> str:
        return self.config.cache_name

    def _url(self, path: str) -> str:
        return f"{self.origin}{path}"

    def _is_same_origin(self, request: httpx.Request) -> bool:
        origin = urlsplit(self.origin)
        return (request.url.scheme, request.url.netloc.decode()) == (origin.scheme, origin.netloc)

    @staticmethod
    def _is_api(request: httpx.Request) -> bool:
        return request.url.path.startswith(API_PATH_PREFIXES)

    async def install(self) -> bool:
        """Pre-populate the current cache with the static asset list.

        All assets are fetched before any is stored, so a failed install
        leaves the cache untouched. Errors are logged, not raised.
        """
        fetched = []
        try:
            for path in self.config.precache:
                response = await self.client.get(self._url(path))
                response.raise_for_status()
                fetched.append((self._url(path), response))
        except httpx.HTTPError as e:
            logger.warning(f"Cache error during install: {e}")
            return False

        cache = self.storage.open(self.cache_name)
        for url, response in fetched:
            cache.put(url, response)
        logger.info(f"Installed {len(fetched)} assets into {self.cache_name}")
        return True

    async def activate(self) -> list[str]:
        """Delete every cache not named like the current version."""
        stale = [name for name in self.storage.keys() if name != self.cache_name]
        for name in stale:
            self.storage.delete(name)
            logger.info(f"Deleted stale cache {name}")
        return stale

    def _store(self, request: httpx.Request, response: httpx.Response) -> None:
        try:
            self.storage.open(self.cache_name).put(str(request.url), response)
        except Exception as e:
            logger.warning(f"Cache write failed for {request.url}: {e}")

    def _offline_response(self, request: httpx.Request) -> httpx.Response:
        if is_navigation(request):
            root = self.storage.match(self._url(ROOT_DOCUMENT))
            if root is not None:
                return root
        return httpx.Response(OFFLINE_STATUS, text=OFFLINE_MESSAGE, request=request)

    async def fetch(self, request: httpx.Request) -> httpx.Response:
        """Answer a request the way the offline worker would."""
        if request.method != "GET" or not self._is_same_origin(request):
            return await self.client.send(request)

        url = str(request.url)

        if self._is_api(request):
            try:
                response = await self.client.send(request)
            except httpx.HTTPError as e:
                logger.info(f"Network failed for {url}: {e}")
                cached = self.storage.match(url)
                return cached if cached is not None else self._offline_response(request)
            if response.is_success:
                return response
            cached = self.storage.match(url)
            return cached if cached is not None else response

        try:
            response = await self.client.send(request)
            await response.aread()
        except httpx.HTTPError as e:
            logger.info(f"Network failed for {url}, serving from cache: {e}")
            cached = self.storage.match(url)
            if cached is not None:
                return cached
            return self._offline_response(request)

        if response.is_success:
            self._store(request, response)
        return response
