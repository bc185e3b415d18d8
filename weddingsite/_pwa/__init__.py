"""Progressive Web App assets for the wedding site.

This package renders the browser-side scripts written into the build
directory alongside the hashed assets.

PWA Features:
- Offline support via Service Worker caching (static and dynamic caches)
- Cache versioning tied to the build version in version.json
- Update banner driven by the service worker or by version.json polling
- Web app manifest for sites that do not ship their own
"""

from ._banner import UPDATE_BANNER_CSS, render_banner_markup
from ._manifest import render_web_manifest
from ._offline import render_offline_page
from ._registration import render_registration_js
from ._service_worker import render_service_worker
from ._version import content_version, format_build_time, timestamp_version
from ._version_check import render_version_check_js

__all__ = [
    "UPDATE_BANNER_CSS",
    "content_version",
    "format_build_time",
    "render_banner_markup",
    "render_offline_page",
    "render_registration_js",
    "render_service_worker",
    "render_version_check_js",
    "render_web_manifest",
    "timestamp_version",
]
