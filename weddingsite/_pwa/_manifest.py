"""Web App Manifest for home-screen installation.

Only rendered when the site does not ship its own manifest.json.
"""

import json

from ..config import SiteConfig


def render_web_manifest(site: SiteConfig, version: str, icons: list[dict] | None = None) -> str:
    """Render manifest.json for the site.

    Args:
        site: Site metadata (names and colors).
        version: Build version, recorded for update detection.
        icons: Optional icon entries ({"src", "sizes", "type"}).
    """
    manifest = {
        "name": site.name,
        "short_name": site.short_name,
        "version": version,
        "id": "/",
        "start_url": "/",
        "scope": "/",
        "display": "standalone",
        "background_color": site.background_color,
        "theme_color": site.theme_color,
        "icons": icons or [],
    }
    return json.dumps(manifest, indent=2, ensure_ascii=False)
