"""Tests for CDN invalidation."""

import logging
from unittest.mock import MagicMock

import pytest
import requests

from weddingsite.cdn import (
    CLOUDFLARE_PURGE_URL,
    NETLIFY_PURGE_URL,
    VERCEL_PURGE_URL,
    CdnInvalidator,
)
from weddingsite.config import CdnConfig, CloudflareConfig, NetlifyConfig, VercelConfig
from weddingsite.models import PurgeResult

PATHS = ("/", "/index.html", "/version.json")


def make_response(status_code: int = 200, json_data: object = None, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if isinstance(json_data, Exception):
        response.json.side_effect = json_data
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def session() -> MagicMock:
    return MagicMock()


@pytest.fixture
def full_config() -> CdnConfig:
    """Configuration with all three providers."""
    return CdnConfig(
        paths=PATHS,
        timeout_seconds=5,
        cloudflare=CloudflareConfig(zone_id="zone", api_token="cf-token", domain="wedding.example"),
        netlify=NetlifyConfig(site_id="site", access_token="nf-token"),
        vercel=VercelConfig(project_id="project", access_token="vc-token"),
    )


class TestCloudflare:
    """Tests for Cloudflare invalidation."""

    def test_not_configured_skips(self, session: MagicMock) -> None:
        """No request is sent without credentials."""
        invalidator = CdnInvalidator(CdnConfig(), session)

        assert invalidator.invalidate_cloudflare() is None
        session.post.assert_not_called()
        assert invalidator.results == []

    def test_purges_full_urls(self, full_config: CdnConfig, session: MagicMock) -> None:
        """Paths are sent as absolute URLs on the configured domain."""
        session.post.return_value = make_response(json_data={"success": True})

        result = CdnInvalidator(full_config, session).invalidate_cloudflare()

        assert result == PurgeResult(provider="Cloudflare", success=True)
        session.post.assert_called_once_with(
            CLOUDFLARE_PURGE_URL.format(zone_id="zone"),
            json={
                "files": [
                    "https://wedding.example/",
                    "https://wedding.example/index.html",
                    "https://wedding.example/version.json",
                ]
            },
            headers={"Authorization": "Bearer cf-token", "Content-Type": "application/json"},
            timeout=5,
        )

    def test_api_failure_records_errors(self, full_config: CdnConfig, session: MagicMock) -> None:
        errors = [{"code": 10000, "message": "Authentication error"}]
        session.post.return_value = make_response(status_code=403, json_data={"success": False, "errors": errors})

        result = CdnInvalidator(full_config, session).invalidate_cloudflare()

        assert result.success is False
        assert result.errors == errors

    def test_request_exception(self, full_config: CdnConfig, session: MagicMock) -> None:
        session.post.side_effect = requests.ConnectionError("Connection refused")

        result = CdnInvalidator(full_config, session).invalidate_cloudflare()

        assert result.success is False
        assert "Connection refused" in result.error

    def test_invalid_json(self, full_config: CdnConfig, session: MagicMock) -> None:
        session.post.return_value = make_response(json_data=ValueError("No JSON"))

        result = CdnInvalidator(full_config, session).invalidate_cloudflare()

        assert result == PurgeResult(provider="Cloudflare", success=False, error="Invalid JSON response")

    def test_non_object_json_is_failure(self, full_config: CdnConfig, session: MagicMock) -> None:
        session.post.return_value = make_response(json_data=["unexpected"])

        result = CdnInvalidator(full_config, session).invalidate_cloudflare()

        assert result.success is False
        assert result.errors == []


class TestPathProviders:
    """Tests for Netlify and Vercel invalidation."""

    def test_netlify_success(self, full_config: CdnConfig, session: MagicMock) -> None:
        session.post.return_value = make_response(status_code=200)

        result = CdnInvalidator(full_config, session).invalidate_netlify()

        assert result == PurgeResult(provider="Netlify", success=True)
        session.post.assert_called_once_with(
            NETLIFY_PURGE_URL.format(site_id="site"),
            json={"paths": list(PATHS)},
            headers={"Authorization": "Bearer nf-token", "Content-Type": "application/json"},
            timeout=5,
        )

    def test_vercel_success(self, full_config: CdnConfig, session: MagicMock) -> None:
        session.post.return_value = make_response(status_code=200)

        result = CdnInvalidator(full_config, session).invalidate_vercel()

        assert result == PurgeResult(provider="Vercel", success=True)
        assert session.post.call_args.args[0] == VERCEL_PURGE_URL.format(project_id="project")

    def test_non_200_is_failure(self, full_config: CdnConfig, session: MagicMock) -> None:
        """Only HTTP 200 counts as success; the body becomes the error."""
        session.post.return_value = make_response(status_code=202, text="accepted later")

        result = CdnInvalidator(full_config, session).invalidate_netlify()

        assert result == PurgeResult(provider="Netlify", success=False, error="accepted later")

    def test_empty_error_body(self, full_config: CdnConfig, session: MagicMock) -> None:
        session.post.return_value = make_response(status_code=500, text="")

        result = CdnInvalidator(full_config, session).invalidate_vercel()

        assert result.error == "HTTP 500"

    def test_request_exception(self, full_config: CdnConfig, session: MagicMock) -> None:
        session.post.side_effect = requests.Timeout("timed out")

        result = CdnInvalidator(full_config, session).invalidate_vercel()

        assert result.success is False
        assert "timed out" in result.error

    def test_not_configured_skips(self, session: MagicMock) -> None:
        invalidator = CdnInvalidator(CdnConfig(), session)

        assert invalidator.invalidate_netlify() is None
        assert invalidator.invalidate_vercel() is None
        session.post.assert_not_called()


class TestInvalidateAll:
    """Tests for invalidate_all."""

    def test_nothing_configured(self, session: MagicMock) -> None:
        assert CdnInvalidator(CdnConfig(), session).invalidate_all() == []

    def test_all_providers_attempted(self, full_config: CdnConfig, session: MagicMock) -> None:
        session.post.side_effect = [
            make_response(json_data={"success": True}),
            make_response(status_code=200),
            make_response(status_code=200),
        ]

        results = CdnInvalidator(full_config, session).invalidate_all()

        assert [r.provider for r in results] == ["Cloudflare", "Netlify", "Vercel"]
        assert all(r.success for r in results)

    def test_one_failure_does_not_stop_others(
        self, full_config: CdnConfig, session: MagicMock, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A failing provider is recorded and the rest still run."""
        session.post.side_effect = [
            requests.ConnectionError("down"),
            make_response(status_code=200),
            make_response(status_code=200),
        ]

        with caplog.at_level(logging.INFO, logger="weddingsite.cdn"):
            results = CdnInvalidator(full_config, session).invalidate_all()

        assert [r.success for r in results] == [False, True, True]
        assert "Completed: 2/3 providers successful" in caplog.text

    def test_repeated_runs_report_separately(
        self, session: MagicMock, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Each run's results and summary cover that run only."""
        config = CdnConfig(netlify=NetlifyConfig(site_id="site", access_token="token"))
        session.post.side_effect = [make_response(status_code=500, text="boom"), make_response(status_code=200)]
        invalidator = CdnInvalidator(config, session)

        first = invalidator.invalidate_all()
        with caplog.at_level(logging.INFO, logger="weddingsite.cdn"):
            second = invalidator.invalidate_all()

        assert first == [PurgeResult(provider="Netlify", success=False, error="boom")]
        assert second == [PurgeResult(provider="Netlify", success=True)]
        assert invalidator.results == second
        assert "Completed: 1/1 providers successful" in caplog.text

    def test_only_configured_providers_reported(self, session: MagicMock) -> None:
        config = CdnConfig(netlify=NetlifyConfig(site_id="site", access_token="token"))
        session.post.return_value = make_response(status_code=200)

        results = CdnInvalidator(config, session).invalidate_all()

        assert results == [PurgeResult(provider="Netlify", success=True)]
