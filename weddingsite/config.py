"""Configuration loader with type-safe dataclasses."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


class ConfigError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


DEFAULT_HASHABLE_EXTENSIONS = (
    ".css",
    ".js",
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".webp",
    ".svg",
    ".woff",
    ".woff2",
)

# Routing tables shared by the offline model and the rendered service worker
STATIC_EXTENSIONS = (".css", ".js", ".woff", ".woff2", ".ttf", ".otf")
IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg", ".ico", ".avif")

DEFAULT_EXTRA_FILES = ("index.html", "manifest.json", "robots.txt", "CNAME")

# HTML and JSON only; hashed assets never need purging.
DEFAULT_PURGE_PATHS = (
    "/",
    "/index.html",
    "/pages/index.html",
    "/pages/gifts.html",
    "/pages/photos.html",
    "/pages/thankyou.html",
    "/pages/privacy.html",
    "/version.json",
    "/manifest.json",
    "/sw.js",
)

VERSION_STRATEGIES = ("timestamp", "content")


@dataclass(frozen=True)
class SiteConfig:
    """Site metadata used for the web app manifest and offline page."""

    name: str = "James & Oliver's Wedding"
    short_name: str = "J&O Wedding"
    theme_color: str = "#B8375B"
    background_color: str = "#FFFFFF"

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigError("Site name cannot be empty")
        if not self.short_name:
            raise ConfigError("Site short_name cannot be empty")


@dataclass(frozen=True)
class BuildConfig:
    """Configuration for the asset builder.

    Directories are relative to the project root passed to the builder.
    """

    assets_dir: str = "assets"
    pages_dir: str = "pages"
    build_dir: str = "dist"
    version_file: str = "version.json"
    hashable_extensions: tuple[str, ...] = DEFAULT_HASHABLE_EXTENSIONS
    extra_files: tuple[str, ...] = DEFAULT_EXTRA_FILES
    version_strategy: str = "timestamp"  # timestamp or content

    def __post_init__(self) -> None:
        for name in ("assets_dir", "pages_dir", "build_dir", "version_file"):
            if not getattr(self, name):
                raise ConfigError(f"Build {name} cannot be empty")
        for ext in self.hashable_extensions:
            if not ext.startswith("."):
                raise ConfigError(f"Hashable extension must start with '.', got '{ext}'")
        if self.version_strategy not in VERSION_STRATEGIES:
            raise ConfigError(
                f"Invalid version_strategy '{self.version_strategy}'. Must be one of: {VERSION_STRATEGIES}"
            )


@dataclass(frozen=True)
class ServiceWorkerConfig:
    """Configuration for the offline caching layer."""

    cache_prefix: str = "james-oliver-wedding"
    static_hosts: tuple[str, ...] = ("fonts.googleapis.com", "fonts.gstatic.com")
    network_only_paths: tuple[str, ...] = ("/version.json", "/sw.js", "/uploads")
    precache: tuple[str, ...] = (
        "https://fonts.googleapis.com/css2?family=Inter:wght@400;600"
        "&family=Playfair+Display:wght@600&display=swap",
    )
    offline_fallback: str = "/index.html"
    version_path: str = "/version.json"

    def __post_init__(self) -> None:
        if not self.cache_prefix:
            raise ConfigError("Service worker cache_prefix cannot be empty")
        for path in self.network_only_paths:
            if not path.startswith("/"):
                raise ConfigError(f"Network-only path must start with '/', got '{path}'")
        if not self.offline_fallback.startswith("/"):
            raise ConfigError("Service worker offline_fallback must start with '/'")
        if not self.version_path.startswith("/"):
            raise ConfigError("Service worker version_path must start with '/'")

    @property
    def precache_urls(self) -> list[str]:
        """Return the extra precache URLs as a list."""
        return list(self.precache)


@dataclass(frozen=True)
class UpdatesConfig:
    """Configuration for the update notifier."""

    check_interval_seconds: int = 300
    banner_timeout_seconds: int = 30
    request_timeout_seconds: int = 10

    def __post_init__(self) -> None:
        if self.check_interval_seconds < 1:
            raise ConfigError(
                f"Update check interval must be at least 1 second, got {self.check_interval_seconds}"
            )
        if self.banner_timeout_seconds < 1:
            raise ConfigError(
                f"Banner timeout must be at least 1 second, got {self.banner_timeout_seconds}"
            )
        if self.request_timeout_seconds < 1:
            raise ConfigError(
                f"Update request timeout must be at least 1 second, got {self.request_timeout_seconds}"
            )


@dataclass(frozen=True)
class CloudflareConfig:
    """Cloudflare purge credentials."""

    zone_id: str | None = None
    api_token: str | None = None
    domain: str = "your-domain.com"

    @property
    def is_configured(self) -> bool:
        return bool(self.zone_id and self.api_token)


@dataclass(frozen=True)
class NetlifyConfig:
    """Netlify purge credentials."""

    site_id: str | None = None
    access_token: str | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.site_id and self.access_token)


@dataclass(frozen=True)
class VercelConfig:
    """Vercel purge credentials."""

    project_id: str | None = None
    access_token: str | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.project_id and self.access_token)


@dataclass(frozen=True)
class CdnConfig:
    """Configuration for CDN invalidation."""

    paths: tuple[str, ...] = DEFAULT_PURGE_PATHS
    timeout_seconds: int = 30
    cloudflare: CloudflareConfig = field(default_factory=CloudflareConfig)
    netlify: NetlifyConfig = field(default_factory=NetlifyConfig)
    vercel: VercelConfig = field(default_factory=VercelConfig)

    def __post_init__(self) -> None:
        if not self.paths:
            raise ConfigError("CDN purge paths cannot be empty")
        for path in self.paths:
            if not path.startswith("/"):
                raise ConfigError(f"CDN purge path must start with '/', got '{path}'")
        if self.timeout_seconds < 1:
            raise ConfigError(f"CDN timeout must be at least 1 second, got {self.timeout_seconds}")


@dataclass(frozen=True)
class GalleryConfig:
    """Configuration for the gallery proxy server."""

    port: int = 3000
    public_key: str | None = None
    secret_key: str | None = None
    api_url: str = "https://api.uploadcare.com/files/"
    preview_suffix: str = "-/preview/-/quality/lightest/"
    timeout_seconds: int = 10
    max_pages: int = 5
    cache_seconds: int = 60  # 0 disables the result cache
    site_dir: str | None = None  # serve built site files when set

    def __post_init__(self) -> None:
        if self.port < 1 or self.port > 65535:
            raise ConfigError(f"Gallery port must be between 1 and 65535, got {self.port}")
        if not self.api_url.startswith(("http://", "https://")):
            raise ConfigError(f"Gallery api_url must start with http:// or https://, got '{self.api_url}'")
        if self.timeout_seconds < 1:
            raise ConfigError(f"Gallery timeout must be at least 1 second, got {self.timeout_seconds}")
        if self.max_pages < 1:
            raise ConfigError(f"Gallery max_pages must be at least 1, got {self.max_pages}")
        if self.cache_seconds < 0:
            raise ConfigError(f"Gallery cache_seconds must be non-negative, got {self.cache_seconds}")

    @property
    def has_credentials(self) -> bool:
        return bool(self.public_key and self.secret_key)


@dataclass(frozen=True)
class Config:
    """Main configuration container."""

    site: SiteConfig = field(default_factory=SiteConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    service_worker: ServiceWorkerConfig = field(default_factory=ServiceWorkerConfig)
    updates: UpdatesConfig = field(default_factory=UpdatesConfig)
    cdn: CdnConfig = field(default_factory=CdnConfig)
    gallery: GalleryConfig = field(default_factory=GalleryConfig)


def _section(data: dict, name: str) -> dict | None:
    value = data.get(name)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' section must be a dictionary")
    return value


def _string_tuple(value: object, name: str) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"'{name}' must be a list")
    return tuple(str(item) for item in value)


def _optional_str(value: object) -> str | None:
    return str(value) if value is not None else None


def _parse_site_config(data: dict | None) -> SiteConfig:
    """Parse site configuration section."""
    if data is None:
        return SiteConfig()

    defaults = SiteConfig()
    return SiteConfig(
        name=str(data.get("name", defaults.name)),
        short_name=str(data.get("short_name", defaults.short_name)),
        theme_color=str(data.get("theme_color", defaults.theme_color)),
        background_color=str(data.get("background_color", defaults.background_color)),
    )


def _parse_build_config(data: dict | None) -> BuildConfig:
    """Parse build configuration section."""
    if data is None:
        return BuildConfig()

    extensions = data.get("hashable_extensions")
    extra_files = data.get("extra_files")

    return BuildConfig(
        assets_dir=str(data.get("assets_dir", "assets")),
        pages_dir=str(data.get("pages_dir", "pages")),
        build_dir=str(data.get("build_dir", "dist")),
        version_file=str(data.get("version_file", "version.json")),
        hashable_extensions=(
            tuple(ext.lower() for ext in _string_tuple(extensions, "build.hashable_extensions"))
            if extensions is not None
            else DEFAULT_HASHABLE_EXTENSIONS
        ),
        extra_files=(
            _string_tuple(extra_files, "build.extra_files") if extra_files is not None else DEFAULT_EXTRA_FILES
        ),
        version_strategy=str(data.get("version_strategy", "timestamp")),
    )


def _parse_service_worker_config(data: dict | None) -> ServiceWorkerConfig:
    """Parse service_worker configuration section."""
    if data is None:
        return ServiceWorkerConfig()

    defaults = ServiceWorkerConfig()
    static_hosts = data.get("static_hosts")
    network_only = data.get("network_only_paths")
    precache = data.get("precache")

    return ServiceWorkerConfig(
        cache_prefix=str(data.get("cache_prefix", defaults.cache_prefix)),
        static_hosts=(
            _string_tuple(static_hosts, "service_worker.static_hosts")
            if static_hosts is not None
            else defaults.static_hosts
        ),
        network_only_paths=(
            _string_tuple(network_only, "service_worker.network_only_paths")
            if network_only is not None
            else defaults.network_only_paths
        ),
        precache=_string_tuple(precache, "service_worker.precache") if precache is not None else defaults.precache,
        offline_fallback=str(data.get("offline_fallback", defaults.offline_fallback)),
        version_path=str(data.get("version_path", defaults.version_path)),
    )


def _parse_updates_config(data: dict | None) -> UpdatesConfig:
    """Parse updates configuration section."""
    if data is None:
        return UpdatesConfig()

    return UpdatesConfig(
        check_interval_seconds=int(data.get("check_interval_seconds", 300)),
        banner_timeout_seconds=int(data.get("banner_timeout_seconds", 30)),
        request_timeout_seconds=int(data.get("request_timeout_seconds", 10)),
    )


def _parse_cdn_config(data: dict | None) -> CdnConfig:
    """Parse cdn configuration section, including provider subsections."""
    if data is None:
        return CdnConfig()

    paths = data.get("paths")
    cloudflare = _section(data, "cloudflare") or {}
    netlify = _section(data, "netlify") or {}
    vercel = _section(data, "vercel") or {}

    return CdnConfig(
        paths=_string_tuple(paths, "cdn.paths") if paths is not None else DEFAULT_PURGE_PATHS,
        timeout_seconds=int(data.get("timeout_seconds", 30)),
        cloudflare=CloudflareConfig(
            zone_id=_optional_str(cloudflare.get("zone_id")),
            api_token=_optional_str(cloudflare.get("api_token")),
            domain=str(cloudflare.get("domain") or "your-domain.com"),
        ),
        netlify=NetlifyConfig(
            site_id=_optional_str(netlify.get("site_id")),
            access_token=_optional_str(netlify.get("access_token")),
        ),
        vercel=VercelConfig(
            project_id=_optional_str(vercel.get("project_id")),
            access_token=_optional_str(vercel.get("access_token")),
        ),
    )


def _parse_gallery_config(data: dict | None) -> GalleryConfig:
    """Parse gallery configuration section."""
    if data is None:
        return GalleryConfig()

    defaults = GalleryConfig()
    return GalleryConfig(
        port=int(data.get("port", defaults.port)),
        public_key=_optional_str(data.get("public_key")),
        secret_key=_optional_str(data.get("secret_key")),
        api_url=str(data.get("api_url", defaults.api_url)),
        preview_suffix=str(data.get("preview_suffix", defaults.preview_suffix)),
        timeout_seconds=int(data.get("timeout_seconds", defaults.timeout_seconds)),
        max_pages=int(data.get("max_pages", defaults.max_pages)),
        cache_seconds=int(data.get("cache_seconds", defaults.cache_seconds)),
        site_dir=_optional_str(data.get("site_dir")),
    )


# (environment variable, section path, key)
_ENV_OVERRIDES = (
    ("CLOUDFLARE_ZONE_ID", ("cdn", "cloudflare"), "zone_id"),
    ("CLOUDFLARE_API_TOKEN", ("cdn", "cloudflare"), "api_token"),
    ("CLOUDFLARE_DOMAIN", ("cdn", "cloudflare"), "domain"),
    ("NETLIFY_SITE_ID", ("cdn", "netlify"), "site_id"),
    ("NETLIFY_ACCESS_TOKEN", ("cdn", "netlify"), "access_token"),
    ("VERCEL_PROJECT_ID", ("cdn", "vercel"), "project_id"),
    ("VERCEL_ACCESS_TOKEN", ("cdn", "vercel"), "access_token"),
    ("UPLOADCARE_PUBLIC_KEY", ("gallery",), "public_key"),
    ("UPLOADCARE_SECRET_KEY", ("gallery",), "secret_key"),
    ("WEDDINGSITE_BUILD_DIR", ("build",), "build_dir"),
)


def _apply_env_overrides(config_data: dict) -> dict:
    """Apply environment variable overrides to configuration.

    CDN and Uploadcare credentials are normally supplied this way rather
    than committed to the YAML file. Supported overrides:
    - CLOUDFLARE_ZONE_ID, CLOUDFLARE_API_TOKEN, CLOUDFLARE_DOMAIN
    - NETLIFY_SITE_ID, NETLIFY_ACCESS_TOKEN
    - VERCEL_PROJECT_ID, VERCEL_ACCESS_TOKEN
    - UPLOADCARE_PUBLIC_KEY, UPLOADCARE_SECRET_KEY
    - WEDDINGSITE_BUILD_DIR: Override build.build_dir
    - WEDDINGSITE_GALLERY_PORT: Override gallery.port
    """
    for env_name, section_path, key in _ENV_OVERRIDES:
        value = os.environ.get(env_name)
        if value is None:
            continue
        section = config_data
        for part in section_path:
            child = section.get(part)
            if child is None:
                child = {}
                section[part] = child
            elif not isinstance(child, dict):
                raise ConfigError(f"'{part}' section must be a dictionary")
            section = child
        section[key] = value

    gallery_port = os.environ.get("WEDDINGSITE_GALLERY_PORT")
    if gallery_port is not None:
        try:
            port = int(gallery_port)
        except ValueError:
            raise ConfigError(f"WEDDINGSITE_GALLERY_PORT must be an integer, got '{gallery_port}'")
        config_data.setdefault("gallery", {})["port"] = port

    return config_data


def parse_config(data: dict) -> Config:
    """Build a validated Config from an already-loaded mapping."""
    data = _apply_env_overrides(data)

    try:
        return Config(
            site=_parse_site_config(_section(data, "site")),
            build=_parse_build_config(_section(data, "build")),
            service_worker=_parse_service_worker_config(_section(data, "service_worker")),
            updates=_parse_updates_config(_section(data, "updates")),
            cdn=_parse_cdn_config(_section(data, "cdn")),
            gallery=_parse_gallery_config(_section(data, "gallery")),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration value: {e}")


def load_config(config_path: str | None) -> Config:
    """Load and validate configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file, or None to use
            defaults plus environment overrides.

    Returns:
        Validated Config object.

    Raises:
        ConfigError: If the file cannot be read or configuration is invalid.
    """
    if config_path is None:
        return parse_config({})

    path = Path(config_path)

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML configuration: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read configuration file: {e}")

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a YAML dictionary")

    return parse_config(data)
