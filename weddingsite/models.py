"""Data models for build manifests and CDN purge results."""

import json
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Manifest:
    """Build manifest written to version.json.

    Attributes:
        version: Build version; changes whenever the site is rebuilt.
        build_time: ISO-8601 UTC build timestamp with a trailing "Z".
        assets: Mapping of original asset path to content-hashed path.
    """

    version: str
    build_time: str
    assets: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "buildTime": self.build_time,
            "assets": dict(self.assets),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, data: dict) -> "Manifest":
        """Build a Manifest from its JSON form.

        Raises:
            ValueError: If the version field is missing or not a string.
        """
        if not isinstance(data, dict):
            raise ValueError("Manifest must be a JSON object")
        version = data.get("version")
        if not isinstance(version, str) or not version:
            raise ValueError("Manifest is missing a 'version' string")
        assets = data.get("assets")
        if assets is None:
            assets = {}
        if not isinstance(assets, dict):
            raise ValueError("Manifest 'assets' must be an object")
        return cls(
            version=version,
            build_time=str(data.get("buildTime", "")),
            assets={str(k): str(v) for k, v in assets.items()},
        )


@dataclass(frozen=True)
class PurgeResult:
    """Outcome of a single CDN provider purge.

    Attributes:
        provider: Provider display name (e.g., "Cloudflare").
        success: Whether the provider accepted the purge.
        error: Error description if the request failed, None otherwise.
        errors: Structured error list returned by the provider, if any.
    """

    provider: str
    success: bool
    error: str | None = None
    errors: list | None = None
