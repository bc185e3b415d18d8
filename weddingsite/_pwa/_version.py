"""Build version computation.

The version is embedded in version.json, the web app manifest and the
service worker cache names, so every new version invalidates old caches.
"""

import hashlib
import json
from datetime import UTC, datetime


def timestamp_version(now: datetime | None = None) -> str:
    """Return the build time in epoch milliseconds as the version string."""
    now = now or datetime.now(UTC)
    return str(int(now.timestamp() * 1000))


def content_version(assets: dict[str, str]) -> str:
    """Compute a version from the hashed asset map.

    Two builds of identical content produce the same version, so repeated
    deploys of unchanged assets do not churn client caches.
    """
    payload = json.dumps(sorted(assets.items())).encode("utf-8")
    return hashlib.sha256(payload).hexdigest()[:8]


def format_build_time(now: datetime | None = None) -> str:
    """Format a build timestamp as ISO-8601 UTC with milliseconds and 'Z'."""
    now = (now or datetime.now(UTC)).astimezone(UTC)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")
