"""Asset builder with content-hashed filenames.

Copies the site into the build directory, renaming hashable assets to
``name.<hash>.ext``, rewriting HTML references to the hashed names and
writing version.json plus the service worker scripts.
"""

import hashlib
import logging
import re
import shutil
from datetime import UTC, datetime
from pathlib import Path, PurePosixPath

from .config import STATIC_EXTENSIONS, Config
from .models import Manifest
from ._pwa import (
    content_version,
    format_build_time,
    render_registration_js,
    render_service_worker,
    render_version_check_js,
    render_web_manifest,
    timestamp_version,
)

logger = logging.getLogger(__name__)

HASH_LENGTH = 8


class BuildError(Exception):
    """Raised when the site cannot be built."""

    pass


def generate_hash(path: Path) -> str:
    """Return the first 8 hex chars of the file's sha256 digest."""
    digest = hashlib.sha256(Path(path).read_bytes()).hexdigest()
    return digest[:HASH_LENGTH]


def hashed_filename(name: str, digest: str) -> str:
    """Insert the digest before the extension: style.css -> style.<digest>.css."""
    path = PurePosixPath(name)
    if not path.suffix:
        return f"{name}.{digest}"
    return f"{path.stem}.{digest}{path.suffix}"


def copy_with_hash(src: Path, dest_dir: Path) -> str:
    """Copy src into dest_dir under its hashed name.

    Returns:
        The hashed file name.
    """
    hashed = hashed_filename(src.name, generate_hash(src))
    shutil.copyfile(src, dest_dir / hashed)
    return hashed


def rewrite_references(text: str, asset_map: dict[str, str]) -> str:
    """Replace every original asset path in text with its hashed path.

    Single pass, longest path first, so a replacement is never rewritten
    again and ``a.css`` does not clobber ``a.css.map``.
    """
    if not asset_map:
        return text
    alternatives = "|".join(re.escape(original) for original in sorted(asset_map, key=len, reverse=True))
    pattern = re.compile(rf"(?<![\w\-])(?:{alternatives})(?![\w.\-])")
    return pattern.sub(lambda match: asset_map[match.group(0)], text)


def update_html_references(html_path: Path, asset_map: dict[str, str]) -> None:
    """Rewrite asset references in an HTML file in place."""
    content = html_path.read_text(encoding="utf-8")
    html_path.write_text(rewrite_references(content, asset_map), encoding="utf-8")


def add_cache_buster(url: str, version: str) -> str:
    """Append a v=<version> query parameter to url."""
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}v={version}"


def _process_directory(
    src_dir: Path,
    dest_dir: Path,
    relative: PurePosixPath,
    extensions: tuple[str, ...],
    asset_map: dict[str, str],
) -> None:
    """Copy src_dir into dest_dir, hashing eligible files."""
    dest_dir.mkdir(parents=True, exist_ok=True)

    for item in sorted(src_dir.iterdir()):
        if item.name.startswith("."):
            continue

        item_relative = relative / item.name
        if item.is_dir():
            _process_directory(item, dest_dir / item.name, item_relative, extensions, asset_map)
            continue

        original_path = f"assets/{item_relative}"
        if item.suffix.lower() in extensions:
            hashed = copy_with_hash(item, dest_dir)
            hashed_path = f"assets/{relative / hashed}"
            asset_map[original_path] = hashed_path
            logger.info("%s -> %s", original_path, hashed_path)
        else:
            shutil.copyfile(item, dest_dir / item.name)
            logger.debug("%s (copied)", original_path)


def _precache_urls(config: Config, build_dir: Path, pages: list[str], asset_map: dict[str, str]) -> list[str]:
    """Collect the app shell URLs for the service worker install step."""
    urls: list[str] = []
    if (build_dir / "index.html").exists():
        urls.extend(["/", "/index.html"])
    urls.extend(f"/{page}" for page in pages if f"/{page}" not in urls)
    if (build_dir / "manifest.json").exists():
        urls.append("/manifest.json")

    fallback = config.service_worker.offline_fallback
    if fallback not in urls and (build_dir / fallback.lstrip("/")).exists():
        urls.append(fallback)

    for hashed in sorted(asset_map.values()):
        if PurePosixPath(hashed).suffix.lower() in STATIC_EXTENSIONS:
            urls.append(f"/{hashed}")

    urls.extend(url for url in config.service_worker.precache_urls if url not in urls)
    return urls


def _write_pwa_files(config: Config, build_dir: Path, manifest: Manifest, precache: list[str]) -> None:
    """Write sw.js and both update notifier scripts."""
    (build_dir / "sw.js").write_text(
        render_service_worker(manifest.version, config.service_worker, precache, config.site.name),
        encoding="utf-8",
    )
    (build_dir / "sw-registration.js").write_text(render_registration_js(config.updates), encoding="utf-8")
    (build_dir / "version-check.js").write_text(
        render_version_check_js(config.updates, config.service_worker),
        encoding="utf-8",
    )
    logger.info("Wrote service worker for version %s (%d precached URLs)", manifest.version, len(precache))


def build_assets(config: Config, root: Path | str = ".", now: datetime | None = None) -> Manifest:
    """Build the site into the configured build directory.

    Args:
        config: Full configuration; the build section drives the file layout.
        root: Project root containing the assets and pages directories.
        now: Build time, defaults to the current UTC time.

    Returns:
        The manifest written to version.json.

    Raises:
        BuildError: If the assets directory is missing or files cannot be written.
    """
    build = config.build
    root = Path(root)
    now = now or datetime.now(UTC)

    assets_dir = root / build.assets_dir
    pages_dir = root / build.pages_dir
    build_dir = root / build.build_dir

    if not assets_dir.is_dir():
        raise BuildError(f"Assets directory not found: {assets_dir}")

    logger.info("Building assets with content hashing...")
    extensions = tuple(ext.lower() for ext in build.hashable_extensions)
    asset_map: dict[str, str] = {}

    try:
        _process_directory(assets_dir, build_dir / "assets", PurePosixPath(), extensions, asset_map)

        pages: list[str] = []
        if pages_dir.is_dir():
            for page in sorted(pages_dir.glob("*.html")):
                dest = build_dir / page.name
                shutil.copyfile(page, dest)
                update_html_references(dest, asset_map)
                pages.append(page.name)
                logger.info("Updated %s with hashed asset references", page.name)
        else:
            logger.warning("Pages directory not found: %s", pages_dir)

        for name in build.extra_files:
            src = root / name
            if not src.is_file():
                continue
            dest = build_dir / name
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(src, dest)
            if name == "index.html":
                update_html_references(dest, asset_map)
            logger.info("Copied %s", name)

        if build.version_strategy == "content":
            version = content_version(asset_map)
        else:
            version = timestamp_version(now)
        manifest = Manifest(version=version, build_time=format_build_time(now), assets=asset_map)

        # regenerated on every build unless the site ships its own
        site_manifest = "manifest.json" in build.extra_files and (root / "manifest.json").is_file()
        if not site_manifest:
            (build_dir / "manifest.json").write_text(render_web_manifest(config.site, version), encoding="utf-8")
            logger.info("Generated manifest.json")

        manifest_json = manifest.to_json()
        for target in (build_dir / build.version_file, root / build.version_file):
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(manifest_json, encoding="utf-8")

        _write_pwa_files(config, build_dir, manifest, _precache_urls(config, build_dir, pages, asset_map))

    except OSError as e:
        raise BuildError(f"Build failed: {e}")

    logger.info("Build complete: %d hashed assets, version %s", len(asset_map), manifest.version)
    logger.info("Build output: %s", build_dir)
    return manifest
