"""CDN cache invalidation for Cloudflare, Netlify and Vercel.

Purges the HTML and JSON entry points after a deploy. Content-hashed assets
are never purged; their names change whenever their content does.
"""

import logging

import requests

from .config import CdnConfig
from .models import PurgeResult

logger = logging.getLogger(__name__)

CLOUDFLARE_PURGE_URL = "https://api.cloudflare.com/client/v4/zones/{zone_id}/purge_cache"
NETLIFY_PURGE_URL = "https://api.netlify.com/api/v1/sites/{site_id}/purge"
VERCEL_PURGE_URL = "https://api.vercel.com/v1/integrations/deploy/{project_id}/purge"


class CdnInvalidator:
    """Sends purge requests to every configured CDN provider.

    Providers without credentials are skipped. Failures are logged and
    recorded, never raised.
    """

    def __init__(self, config: CdnConfig, session: requests.Session | None = None) -> None:
        """Initialize invalidator with configuration.

        Args:
            config: CDN configuration with purge paths and credentials.
            session: Optional requests session (shared connection pool).
        """
        self._config = config
        self._session = session or requests.Session()
        self.results: list[PurgeResult] = []

    def _post(self, url: str, token: str, payload: dict) -> requests.Response:
        return self._session.post(
            url,
            json=payload,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
            timeout=self._config.timeout_seconds,
        )

    def _record(self, result: PurgeResult) -> PurgeResult:
        self.results.append(result)
        return result

    def invalidate_cloudflare(self) -> PurgeResult | None:
        """Purge the configured paths from Cloudflare by full URL.

        Returns:
            The purge result, or None if Cloudflare is not configured.
        """
        cf = self._config.cloudflare
        if not cf.is_configured:
            logger.warning("Cloudflare credentials not configured")
            return None

        logger.info("Invalidating Cloudflare cache...")
        payload = {"files": [f"https://{cf.domain}{path}" for path in self._config.paths]}

        try:
            response = self._post(CLOUDFLARE_PURGE_URL.format(zone_id=cf.zone_id), cf.api_token, payload)
            data = response.json()
        except requests.RequestException as e:
            logger.error("Cloudflare request failed: %s", e)
            return self._record(PurgeResult(provider="Cloudflare", success=False, error=str(e)))
        except ValueError as e:
            logger.error("Cloudflare returned invalid JSON: %s", e)
            return self._record(PurgeResult(provider="Cloudflare", success=False, error="Invalid JSON response"))

        if not isinstance(data, dict):
            data = {}

        if data.get("success"):
            logger.info("Cloudflare cache invalidated successfully")
            return self._record(PurgeResult(provider="Cloudflare", success=True))

        errors = data.get("errors") or []
        logger.error("Cloudflare invalidation failed: %s", errors)
        return self._record(PurgeResult(provider="Cloudflare", success=False, errors=errors))

    def _invalidate_by_paths(self, provider: str, url: str, token: str) -> PurgeResult:
        """POST {"paths": [...]} and treat HTTP 200 as success."""
        logger.info("Invalidating %s cache...", provider)

        try:
            response = self._post(url, token, {"paths": list(self._config.paths)})
        except requests.RequestException as e:
            logger.error("%s request failed: %s", provider, e)
            return self._record(PurgeResult(provider=provider, success=False, error=str(e)))

        if response.status_code == 200:
            logger.info("%s cache invalidated successfully", provider)
            return self._record(PurgeResult(provider=provider, success=True))

        logger.error("%s invalidation failed (HTTP %d): %s", provider, response.status_code, response.text)
        return self._record(
            PurgeResult(provider=provider, success=False, error=response.text or f"HTTP {response.status_code}")
        )

    def invalidate_netlify(self) -> PurgeResult | None:
        """Purge the configured paths from Netlify."""
        netlify = self._config.netlify
        if not netlify.is_configured:
            logger.warning("Netlify credentials not configured")
            return None
        return self._invalidate_by_paths(
            "Netlify",
            NETLIFY_PURGE_URL.format(site_id=netlify.site_id),
            netlify.access_token,
        )

    def invalidate_vercel(self) -> PurgeResult | None:
        """Purge the configured paths from Vercel."""
        vercel = self._config.vercel
        if not vercel.is_configured:
            logger.warning("Vercel credentials not configured")
            return None
        return self._invalidate_by_paths(
            "Vercel",
            VERCEL_PURGE_URL.format(project_id=vercel.project_id),
            vercel.access_token,
        )

    def invalidate_all(self) -> list[PurgeResult]:
        """Purge every configured provider and log a summary.

        Returns:
            Results for the providers that were attempted.
        """
        self.results = []
        logger.info("Starting CDN invalidation...")
        logger.info("Files to invalidate: %s", ", ".join(self._config.paths))

        self.invalidate_cloudflare()
        self.invalidate_netlify()
        self.invalidate_vercel()

        for result in self.results:
            if result.success:
                logger.info("%s: Success", result.provider)
            else:
                logger.info("%s: Failed%s", result.provider, f" ({result.error})" if result.error else "")

        success_count = sum(1 for r in self.results if r.success)
        logger.info("Completed: %d/%d providers successful", success_count, len(self.results))
        return list(self.results)
