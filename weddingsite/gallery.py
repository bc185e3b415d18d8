"""Gallery proxy server.

Forwards GET /uploads to the Uploadcare files API and returns the ready
images as preview URLs. Optionally serves the built site for local preview.
"""

import json
import logging
import mimetypes
import re
import threading
import time
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from typing import Any, Optional
from urllib.parse import unquote, urlsplit

import requests

from .config import GalleryConfig

logger = logging.getLogger(__name__)

# name.<8 hex>.ext, as produced by the asset builder
HASHED_ASSET_RE = re.compile(r"\.[0-9a-f]{8}\.[A-Za-z0-9]+$")

NO_CACHE_FILES = ("sw.js", "version.json")
IMMUTABLE_CACHE_CONTROL = "public, max-age=31536000, immutable"


class GalleryError(Exception):
    """Raised when the image API cannot be queried."""

    pass


class ServerError(Exception):
    """Raised when the proxy server fails to start."""

    pass


def extract_image_urls(payload: Any, suffix: str) -> list[str]:
    """Map an Uploadcare file listing to preview image URLs.

    Only files that are images and fully processed are kept.

    Args:
        payload: Decoded JSON response ({"results": [...]}).
        suffix: Transformation suffix appended to each CDN URL.
    """
    if not isinstance(payload, dict):
        return []
    results = payload.get("results") or []
    return [
        f"{entry['cdn_url']}{suffix}"
        for entry in results
        if isinstance(entry, dict) and entry.get("is_image") and entry.get("is_ready") and entry.get("cdn_url")
    ]


class GalleryClient:
    """Client for the Uploadcare files API with a short result cache."""

    def __init__(self, config: GalleryConfig, session: requests.Session | None = None) -> None:
        self._config = config
        self._session = session or requests.Session()
        self._lock = threading.Lock()
        self._cached: list[str] | None = None
        self._cached_at = 0.0

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Uploadcare.Simple {self._config.public_key}:{self._config.secret_key}",
            "Accept": "application/json",
        }

    def _fetch(self) -> list[str]:
        if not self._config.has_credentials:
            raise GalleryError("Uploadcare credentials not configured")

        urls: list[str] = []
        next_url: str | None = self._config.api_url
        pages = 0
        while next_url and pages < self._config.max_pages:
            try:
                response = self._session.get(next_url, headers=self._headers(), timeout=self._config.timeout_seconds)
                response.raise_for_status()
                payload = response.json()
            except requests.RequestException as e:
                raise GalleryError(f"Image API request failed: {e}")
            except ValueError as e:
                raise GalleryError(f"Image API returned invalid JSON: {e}")

            urls.extend(extract_image_urls(payload, self._config.preview_suffix))
            next_url = payload.get("next") if isinstance(payload, dict) else None
            pages += 1

        return urls

    def list_images(self) -> list[str]:
        """Return preview URLs for all ready images.

        Raises:
            GalleryError: If the API is unreachable or misconfigured.
        """
        with self._lock:
            ttl = self._config.cache_seconds
            if self._cached is not None and ttl > 0 and time.monotonic() - self._cached_at < ttl:
                return list(self._cached)

            urls = self._fetch()
            self._cached = urls
            self._cached_at = time.monotonic()
            logger.debug("Fetched %d gallery images", len(urls))
            return list(urls)


def cache_control_for(path: Path) -> str:
    """Return the Cache-Control header for a served site file."""
    if path.name in NO_CACHE_FILES or path.suffix == ".html":
        return "no-cache"
    if HASHED_ASSET_RE.search(path.name):
        return IMMUTABLE_CACHE_CONTROL
    return "public, max-age=3600"


class GalleryHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the gallery proxy and site preview."""

    # Class-level references set by factory
    client: Optional[GalleryClient] = None
    site_dir: Optional[Path] = None

    def log_message(self, format: str, *args: Any) -> None:
        """Override to use Python logging instead of stderr."""
        logger.debug("Gallery %s - %s", self.address_string(), format % args)

    def _send_body(self, code: int, body: bytes, content_type: str, cache_control: str = "no-store") -> None:
        self.send_response(code)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Cache-Control", cache_control)
        self.send_header("Connection", "close")
        self.end_headers()
        self.wfile.write(body)

    def _send_json(self, code: int, data: Any) -> None:
        """Send a JSON response with the given status code."""
        self._send_body(code, json.dumps(data).encode("utf-8"), "application/json")

    def _send_error_json(self, code: int, message: str) -> None:
        """Send a JSON error response."""
        self._send_json(code, {"error": message})

    def do_GET(self) -> None:
        """Handle GET requests."""
        path = urlsplit(self.path).path

        try:
            if path == "/uploads":
                self._handle_uploads()
            elif path == "/health":
                self._send_json(200, {"status": "ok"})
            elif self.site_dir is not None:
                self._handle_static(path)
            else:
                self._send_error_json(404, "Not found")
        except Exception as e:
            logger.exception("Error handling request: %s", e)
            self._send_error_json(500, "Internal server error")

    def _handle_uploads(self) -> None:
        """Handle GET /uploads endpoint - list gallery image URLs."""
        if self.client is None:
            self._send_error_json(503, "Gallery not available")
            return

        try:
            self._send_json(200, self.client.list_images())
        except GalleryError as e:
            logger.error("Gallery upstream error: %s", e)
            self._send_error_json(502, "Gallery upstream unavailable")

    def _resolve_static(self, path: str) -> Path | None:
        root = self.site_dir.resolve()
        relative = unquote(path).lstrip("/") or "index.html"
        if "\x00" in relative:
            logger.warning("Null byte in request path: %s", path)
            return None
        candidate = (root / relative).resolve()
        if not candidate.is_relative_to(root):
            logger.warning("Path traversal attempt: %s", path)
            return None
        if candidate.is_dir():
            candidate = candidate / "index.html"
        return candidate if candidate.is_file() else None

    def _handle_static(self, path: str) -> None:
        """Serve a file from the built site directory."""
        target = self._resolve_static(path)
        if target is None:
            self._send_error_json(404, "Not found")
            return

        content_type = mimetypes.guess_type(target.name)[0] or "application/octet-stream"
        if content_type.startswith("text/") or content_type in ("application/javascript", "application/json"):
            content_type += "; charset=utf-8"
        self._send_body(200, target.read_bytes(), content_type, cache_control_for(target))


def _create_handler_class(client: Optional[GalleryClient], site_dir: Optional[Path] = None) -> type:
    """Create a handler class with the client and site directory bound."""

    class BoundGalleryHandler(GalleryHandler):
        pass

    BoundGalleryHandler.client = client
    BoundGalleryHandler.site_dir = site_dir
    return BoundGalleryHandler


class GalleryServer:
    """Threaded HTTP server for the gallery proxy."""

    def __init__(self, config: GalleryConfig, client: GalleryClient | None = None) -> None:
        """Initialize the server.

        Args:
            config: Gallery configuration (port, credentials, site_dir).
            client: Image API client; created from config when omitted.
        """
        self.config = config
        self.client = client or GalleryClient(config)
        self._server: Optional[HTTPServer] = None
        self._thread: Optional[threading.Thread] = None
        self._shutdown_event = threading.Event()

    def start(self) -> None:
        """Start the server in a background thread.

        Raises:
            ServerError: If the server fails to start.
        """
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Gallery server is already running")
            return

        site_dir = Path(self.config.site_dir) if self.config.site_dir else None
        if site_dir is not None and not site_dir.is_dir():
            raise ServerError(f"Site directory not found: {site_dir}")

        try:
            self._server = HTTPServer(("", self.config.port), _create_handler_class(self.client, site_dir))
            self._server.timeout = 1.0  # Allow periodic shutdown checks
        except OSError as e:
            if e.errno in (98, 48):  # EADDRINUSE (Linux=98, macOS=48)
                raise ServerError(f"Port {self.config.port} is already in use")
            if e.errno == 13:  # EACCES
                raise ServerError(
                    f"Permission denied for port {self.config.port}. Ports below 1024 require root privileges."
                )
            raise ServerError(f"Failed to start gallery server on port {self.config.port}: {e}")

        self._shutdown_event.clear()
        self._thread = threading.Thread(target=self._serve_forever, name="gallery-server", daemon=True)
        self._thread.start()

        if not self.config.has_credentials:
            logger.warning("Uploadcare credentials not configured; /uploads will return 502")
        logger.info("Gallery server running on port %d", self.config.port)

    def _serve_forever(self) -> None:
        """Server loop that checks for shutdown."""
        while not self._shutdown_event.is_set():
            if self._server:
                self._server.handle_request()

    def stop(self) -> None:
        """Stop the server gracefully."""
        if self._thread is None:
            return

        logger.info("Stopping gallery server...")
        self._shutdown_event.set()

        if self._thread.is_alive():
            self._thread.join(timeout=5.0)

        if self._server:
            self._server.server_close()

        self._server = None
        self._thread = None
        logger.info("Gallery server stopped")

    @property
    def is_running(self) -> bool:
        """Check if the server is running."""
        return self._thread is not None and self._thread.is_alive()
