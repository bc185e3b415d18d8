"""Version polling for deployed sites.

Follows the same protocol as the browser fallback notifier: fetch
version.json with a cache-busting query, remember the first version seen,
and report when the deployed version changes.
"""

import logging
import threading
import time
from collections.abc import Callable

import requests

from .config import UpdatesConfig
from .models import Manifest

logger = logging.getLogger(__name__)


class UpdateChecker:
    """Polls a version.json URL and reports new versions."""

    def __init__(
        self,
        version_url: str,
        config: UpdatesConfig,
        session: requests.Session | None = None,
        on_update: Callable[[Manifest], None] | None = None,
    ) -> None:
        """Initialize the checker.

        Args:
            version_url: Absolute URL of the deployed version.json.
            config: Polling interval and request timeout.
            session: Optional requests session.
            on_update: Called with the new manifest when an update is found.
        """
        self.version_url = version_url
        self.config = config
        self.current_version: str | None = None
        self._session = session or requests.Session()
        self._on_update = on_update
        self._lock = threading.Lock()
        self._is_checking = False
        self._paused = False
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_paused(self) -> bool:
        return self._paused

    def fetch_manifest(self) -> Manifest:
        """Fetch and parse the deployed manifest.

        Raises:
            requests.RequestException: On network or HTTP errors.
            ValueError: If the body is not a valid manifest.
        """
        response = self._session.get(
            self.version_url,
            params={"t": str(int(time.time() * 1000))},
            headers={"Cache-Control": "no-cache"},
            timeout=self.config.request_timeout_seconds,
        )
        response.raise_for_status()
        return Manifest.from_dict(response.json())

    def initialize(self) -> str | None:
        """Record the currently deployed version.

        Returns:
            The version, or None if it could not be fetched.
        """
        try:
            self.current_version = self.fetch_manifest().version
            logger.info("Current version: %s", self.current_version)
        except (requests.RequestException, ValueError) as e:
            logger.warning("Failed to get current version: %s", e)
        return self.current_version

    def check(self) -> Manifest | None:
        """Check once for a new version.

        A detected update pauses further checks until resume() is called.

        Returns:
            The new manifest, or None if there is no update (or the check
            was skipped or failed).
        """
        with self._lock:
            if self._paused or self._is_checking:
                return None
            self._is_checking = True

        try:
            manifest = self.fetch_manifest()
        except (requests.RequestException, ValueError) as e:
            logger.warning("Version check failed: %s", e)
            return None
        finally:
            with self._lock:
                self._is_checking = False

        if self.current_version is None:
            self.current_version = manifest.version
            return None

        if manifest.version == self.current_version:
            return None

        logger.info("New version detected: %s (was %s)", manifest.version, self.current_version)
        self.pause()
        if self._on_update is not None:
            self._on_update(manifest)
        return manifest

    def pause(self) -> None:
        """Stop reporting updates (the banner is showing)."""
        with self._lock:
            self._paused = True

    def resume(self, version: str | None = None) -> None:
        """Resume checking, optionally adopting a new current version."""
        with self._lock:
            self._paused = False
            if version is not None:
                self.current_version = version

    def start(self) -> None:
        """Start polling in a background thread."""
        if self._thread and self._thread.is_alive():
            logger.warning("Update checker already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="update-checker", daemon=True)
        self._thread.start()
        logger.info("Watching %s every %ds", self.version_url, self.config.check_interval_seconds)

    def stop(self) -> None:
        """Stop the polling thread."""
        if not self._thread or not self._thread.is_alive():
            return

        self._stop_event.set()
        self._thread.join(timeout=5)
        if self._thread.is_alive():
            logger.warning("Update checker thread did not stop gracefully")

    def _run(self) -> None:
        """Polling loop - runs in background thread."""
        if self.current_version is None:
            self.initialize()
        while not self._stop_event.wait(self.config.check_interval_seconds):
            self.check()
