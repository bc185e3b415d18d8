"""Offline caching layer: request routing and cache lifecycle.

This is the Python model of the service worker shipped with the site. The
rendered JavaScript in ``weddingsite._pwa`` follows the same routing table:

- Navigations (HTML): Network-first into the dynamic cache, falling back to
  the cached offline page
- Fonts, stylesheets, scripts: Cache-first into the static cache
- Images: Stale-while-revalidate into the dynamic cache
- version.json, sw.js, /uploads and non-GET: Network-only

Cache names carry the build version, so activating a worker for a new build
deletes every cache left behind by the previous one.
"""

import enum
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from urllib.parse import urljoin, urlsplit

import requests

from .config import IMAGE_EXTENSIONS, STATIC_EXTENSIONS, ServiceWorkerConfig
from ._pwa import render_offline_page

logger = logging.getLogger(__name__)


class NetworkError(Exception):
    """Raised by a fetcher when the network request could not complete."""

    pass


class Strategy(enum.Enum):
    """Fetch strategy applied to an intercepted request."""

    CACHE_FIRST = "cache-first"
    NETWORK_FIRST = "network-first"
    STALE_WHILE_REVALIDATE = "stale-while-revalidate"
    NETWORK_ONLY = "network-only"


@dataclass(frozen=True)
class Request:
    """An intercepted browser request.

    Attributes:
        url: Absolute request URL.
        method: HTTP method.
        mode: Fetch mode ("navigate" for page loads).
        destination: Fetch destination ("document", "style", "font", "image", ...).
    """

    url: str
    method: str = "GET"
    mode: str = "no-cors"
    destination: str = ""


@dataclass(frozen=True)
class Response:
    """A cached or fetched HTTP response."""

    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status <= 299


Fetcher = Callable[[Request], Response]

OFFLINE_RESPONSE = Response(
    status=503,
    body=b"Offline",
    headers={"Content-Type": "text/plain"},
)


class CacheStorage:
    """Named response caches keyed by URL, in creation order."""

    def __init__(self) -> None:
        self._caches: dict[str, dict[str, Response]] = {}

    def open(self, name: str) -> dict[str, Response]:
        return self._caches.setdefault(name, {})

    def keys(self) -> list[str]:
        return list(self._caches)

    def has(self, name: str) -> bool:
        return name in self._caches

    def delete(self, name: str) -> bool:
        return self._caches.pop(name, None) is not None

    def match(self, url: str) -> Response | None:
        """Return the first cached response for url across all caches."""
        for entries in self._caches.values():
            response = entries.get(url)
            if response is not None:
                return response
        return None


def static_cache_name(prefix: str, version: str) -> str:
    return f"{prefix}-static-v{version}"


def dynamic_cache_name(prefix: str, version: str) -> str:
    return f"{prefix}-dynamic-v{version}"


def select_strategy(request: Request, config: ServiceWorkerConfig, origin: str) -> Strategy:
    """Pick the fetch strategy for a request.

    Args:
        request: The intercepted request.
        config: Service worker configuration with routing lists.
        origin: The site origin (scheme://host[:port]).

    Returns:
        The strategy to apply.
    """
    if request.method.upper() != "GET":
        return Strategy.NETWORK_ONLY

    parts = urlsplit(request.url)
    same_origin = f"{parts.scheme}://{parts.netloc}" == origin.rstrip("/")
    path = parts.path or "/"
    suffix = PurePosixPath(path).suffix.lower()

    if same_origin and path in config.network_only_paths:
        return Strategy.NETWORK_ONLY

    if (
        request.mode == "navigate"
        or request.destination == "document"
        or (same_origin and (path == "/" or suffix == ".html"))
    ):
        return Strategy.NETWORK_FIRST

    if (
        request.destination in ("font", "style", "script")
        or suffix in STATIC_EXTENSIONS
        or parts.hostname in config.static_hosts
    ):
        return Strategy.CACHE_FIRST

    if request.destination == "image" or suffix in IMAGE_EXTENSIONS:
        return Strategy.STALE_WHILE_REVALIDATE

    if not same_origin:
        return Strategy.NETWORK_ONLY

    return Strategy.NETWORK_FIRST


def requests_fetcher(session: requests.Session | None = None, timeout: float = 10) -> Fetcher:
    """Build a fetcher backed by requests.

    Request failures are raised as NetworkError so the strategies can fall
    back to cached data.
    """
    http = session or requests.Session()

    def fetch(request: Request) -> Response:
        try:
            resp = http.request(request.method, request.url, timeout=timeout)
        except requests.RequestException as e:
            raise NetworkError(str(e)) from e
        return Response(status=resp.status_code, body=resp.content, headers=dict(resp.headers))

    return fetch


class ServiceWorker:
    """Offline cache manager for a single build version.

    Handles the install/activate lifecycle, per-request strategies and the
    CHECK_VERSION / SKIP_WAITING client messages.
    """

    def __init__(
        self,
        config: ServiceWorkerConfig,
        version: str,
        fetcher: Fetcher,
        origin: str,
        storage: CacheStorage | None = None,
        *,
        precache: list[str] | None = None,
        site_name: str = "",
    ) -> None:
        """Initialize the worker.

        Args:
            config: Service worker configuration.
            version: Build version embedded in cache names.
            fetcher: Callable performing network requests; raises NetworkError.
            origin: Site origin used to resolve relative URLs.
            storage: Existing cache storage (shared across worker versions).
            precache: URLs stored in the static cache on install.
            site_name: Site name shown on the offline page.
        """
        self.config = config
        self.version = version
        self.origin = origin.rstrip("/")
        self.storage = storage if storage is not None else CacheStorage()
        self.static_cache = static_cache_name(config.cache_prefix, version)
        self.dynamic_cache = dynamic_cache_name(config.cache_prefix, version)
        self.skip_waiting = False
        self._fetcher = fetcher
        self._precache = list(precache) if precache is not None else ["/", config.offline_fallback]
        self._offline_page = render_offline_page(site_name).encode("utf-8")

    def _absolute(self, url: str) -> str:
        return urljoin(self.origin + "/", url)

    def install(self) -> bool:
        """Precache the app shell into the static cache.

        All-or-nothing: if any URL fails, nothing is stored.

        Returns:
            True if every URL was cached.
        """
        logger.info("Installing service worker version %s", self.version)
        fetched: dict[str, Response] = {}
        for url in self._precache:
            absolute = self._absolute(url)
            try:
                response = self._fetcher(Request(absolute))
            except NetworkError as e:
                logger.error("Precache failed for %s: %s", url, e)
                return False
            if not response.ok:
                logger.error("Precache failed for %s: HTTP %d", url, response.status)
                return False
            fetched[absolute] = response

        self.storage.open(self.static_cache).update(fetched)
        logger.info("Precached %d URLs into %s", len(fetched), self.static_cache)
        return True

    def activate(self) -> list[str]:
        """Delete caches left by other versions.

        Returns:
            Names of the deleted caches.
        """
        logger.info("Activating service worker version %s", self.version)
        current = {self.static_cache, self.dynamic_cache}
        deleted = []
        for name in self.storage.keys():
            if name not in current:
                logger.info("Deleting old cache: %s", name)
                self.storage.delete(name)
                deleted.append(name)
        return deleted

    def fetch(self, request: Request) -> Response:
        """Answer an intercepted request using its strategy."""
        request = Request(
            url=self._absolute(request.url),
            method=request.method,
            mode=request.mode,
            destination=request.destination,
        )
        strategy = select_strategy(request, self.config, self.origin)
        logger.debug("%s %s via %s", request.method, request.url, strategy.value)

        if strategy is Strategy.CACHE_FIRST:
            return self._cache_first(request)
        if strategy is Strategy.NETWORK_FIRST:
            return self._network_first(request)
        if strategy is Strategy.STALE_WHILE_REVALIDATE:
            return self._stale_while_revalidate(request)
        return self._network_only(request)

    def _put(self, cache_name: str, request: Request, response: Response) -> None:
        if response.ok:
            self.storage.open(cache_name)[request.url] = response

    def _offline(self, request: Request) -> Response:
        if request.mode == "navigate" or request.destination == "document":
            fallback = self.storage.match(self._absolute(self.config.offline_fallback))
            if fallback is not None:
                return fallback
            return Response(
                status=503,
                body=self._offline_page,
                headers={"Content-Type": "text/html; charset=utf-8"},
            )
        return OFFLINE_RESPONSE

    def _cache_first(self, request: Request) -> Response:
        cached = self.storage.match(request.url)
        if cached is not None:
            return cached
        try:
            response = self._fetcher(request)
        except NetworkError as e:
            logger.debug("Cache-first fetch failed for %s: %s", request.url, e)
            return self._offline(request)
        self._put(self.static_cache, request, response)
        return response

    def _network_first(self, request: Request) -> Response:
        try:
            response = self._fetcher(request)
        except NetworkError as e:
            logger.debug("Network-first fetch failed for %s: %s", request.url, e)
            cached = self.storage.match(request.url)
            if cached is not None:
                return cached
            return self._offline(request)
        self._put(self.dynamic_cache, request, response)
        return response

    def _stale_while_revalidate(self, request: Request) -> Response:
        cached = self.storage.match(request.url)
        try:
            response = self._fetcher(request)
        except NetworkError as e:
            logger.debug("Revalidation failed for %s: %s", request.url, e)
            return cached if cached is not None else self._offline(request)
        self._put(self.dynamic_cache, request, response)
        return cached if cached is not None else response

    def _network_only(self, request: Request) -> Response:
        try:
            return self._fetcher(request)
        except NetworkError as e:
            logger.debug("Network-only fetch failed for %s: %s", request.url, e)
            return self._offline(request)

    def check_version(self) -> bool:
        """Return True if the deployed version.json differs from this build."""
        try:
            response = self._fetcher(Request(self._absolute(self.config.version_path)))
        except NetworkError as e:
            logger.debug("Version check failed: %s", e)
            return False
        if not response.ok:
            return False
        try:
            deployed = json.loads(response.body.decode("utf-8")).get("version")
        except (ValueError, AttributeError) as e:
            logger.debug("Version check returned invalid JSON: %s", e)
            return False
        return deployed is not None and deployed != self.version

    def handle_message(self, data: object) -> dict | None:
        """Handle a client postMessage payload.

        Returns:
            The reply for CHECK_VERSION, None for everything else.
        """
        if not isinstance(data, dict):
            return None
        message_type = data.get("type")
        if message_type == "CHECK_VERSION":
            return {"hasUpdate": self.check_version()}
        if message_type == "SKIP_WAITING":
            self.skip_waiting = True
        return None

    def cache_status(self) -> dict[str, int]:
        """Return the number of entries in each cache."""
        return {name: len(self.storage.open(name)) for name in self.storage.keys()}

    def clear_all(self) -> int:
        """Delete every cache. Returns the number deleted."""
        names = self.storage.keys()
        for name in names:
            self.storage.delete(name)
        logger.info("Cleared %d caches", len(names))
        return len(names)
