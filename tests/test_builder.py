"""Tests for the asset builder."""

import hashlib
import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from weddingsite.builder import (
    BuildError,
    add_cache_buster,
    build_assets,
    copy_with_hash,
    generate_hash,
    hashed_filename,
    rewrite_references,
    update_html_references,
)
from weddingsite.config import BuildConfig, Config

BUILD_TIME = datetime(2026, 6, 20, 14, 30, 0, tzinfo=UTC)


@pytest.fixture
def site_root(tmp_path: Path) -> Path:
    """Create a small site tree with assets, pages and root files."""
    (tmp_path / "assets" / "css").mkdir(parents=True)
    (tmp_path / "assets" / "images" / "dividers").mkdir(parents=True)
    (tmp_path / "assets" / "fonts").mkdir(parents=True)
    (tmp_path / "pages").mkdir()

    (tmp_path / "assets" / "css" / "style.css").write_text("body { color: #B8375B; }")
    (tmp_path / "assets" / "images" / "hero-bg.jpg").write_bytes(b"\xff\xd8jpegdata")
    (tmp_path / "assets" / "images" / "dividers" / "wave.png").write_bytes(b"\x89PNGwave")
    (tmp_path / "assets" / "fonts" / "inter.woff2").write_bytes(b"wOF2font")
    (tmp_path / "assets" / "fonts" / "LICENSE.txt").write_text("OFL")
    (tmp_path / "assets" / ".DS_Store").write_bytes(b"junk")

    (tmp_path / "pages" / "gifts.html").write_text(
        '<link rel="stylesheet" href="../assets/css/style.css">'
        '<img src="../assets/images/dividers/wave.png">'
    )
    (tmp_path / "pages" / "notes.txt").write_text("not a page")

    (tmp_path / "index.html").write_text(
        '<link rel="stylesheet" href="assets/css/style.css">'
        '<div style="background: url(assets/images/hero-bg.jpg)"></div>'
        '<script src="/sw-registration.js"></script>'
    )
    (tmp_path / "robots.txt").write_text("User-agent: *")
    (tmp_path / "CNAME").write_text("wedding.example")
    return tmp_path


def expected_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()[:8]


class TestGenerateHash:
    """Tests for generate_hash function."""

    def test_first_eight_hex_chars_of_sha256(self, tmp_path: Path) -> None:
        """Hash is the sha256 prefix of the file bytes."""
        path = tmp_path / "style.css"
        path.write_bytes(b"body {}")

        assert generate_hash(path) == expected_hash(b"body {}")

    def test_stable_across_runs(self, tmp_path: Path) -> None:
        """Same content always produces the same hash."""
        path = tmp_path / "style.css"
        path.write_bytes(b"body {}")

        assert generate_hash(path) == generate_hash(path)

    def test_changes_with_content(self, tmp_path: Path) -> None:
        """Different content produces a different hash."""
        path = tmp_path / "style.css"
        path.write_bytes(b"body {}")
        first = generate_hash(path)
        path.write_bytes(b"body { margin: 0 }")

        assert generate_hash(path) != first


class TestHashedFilename:
    """Tests for hashed_filename function."""

    def test_inserts_hash_before_extension(self) -> None:
        assert hashed_filename("style.css", "abcd1234") == "style.abcd1234.css"

    def test_keeps_inner_dots(self) -> None:
        assert hashed_filename("jquery.min.js", "abcd1234") == "jquery.min.abcd1234.js"

    def test_no_extension(self) -> None:
        assert hashed_filename("LICENSE", "abcd1234") == "LICENSE.abcd1234"


class TestCopyWithHash:
    """Tests for copy_with_hash function."""

    def test_copies_under_hashed_name(self, tmp_path: Path) -> None:
        """File is copied and the hashed name returned."""
        src = tmp_path / "app.js"
        src.write_bytes(b"console.log(1);")
        dest = tmp_path / "out"
        dest.mkdir()

        name = copy_with_hash(src, dest)

        assert name == f"app.{expected_hash(b'console.log(1);')}.js"
        assert (dest / name).read_bytes() == b"console.log(1);"


class TestRewriteReferences:
    """Tests for rewrite_references function."""

    def test_rewrites_every_occurrence(self) -> None:
        """All references to an asset are rewritten."""
        asset_map = {"assets/css/style.css": "assets/css/style.11111111.css"}
        text = '<link href="assets/css/style.css"><link href="/assets/css/style.css">'

        result = rewrite_references(text, asset_map)

        assert result.count("assets/css/style.11111111.css") == 2
        assert "style.css" not in result

    def test_longest_path_wins(self) -> None:
        """A shorter key does not clobber a longer one that starts with it."""
        asset_map = {
            "assets/a.js": "assets/a.11111111.js",
            "assets/a.json.js": "assets/a.json.22222222.js",
        }
        text = "assets/a.js assets/a.json.js"

        assert rewrite_references(text, asset_map) == "assets/a.11111111.js assets/a.json.22222222.js"

    def test_does_not_rewrite_replacement(self) -> None:
        """A hashed path that contains another key is not rewritten again."""
        asset_map = {
            "assets/x.css": "assets/y.css",
            "assets/y.css": "assets/y.22222222.css",
        }

        assert rewrite_references("assets/x.css", asset_map) == "assets/y.css"

    def test_ignores_longer_unhashed_names(self) -> None:
        """A source map next to a hashed file keeps its name."""
        asset_map = {"assets/a.css": "assets/a.11111111.css"}

        assert rewrite_references("assets/a.css.map", asset_map) == "assets/a.css.map"

    def test_keeps_query_strings(self) -> None:
        """Query strings after the path are preserved."""
        asset_map = {"assets/a.css": "assets/a.11111111.css"}

        assert rewrite_references("assets/a.css?v=2", asset_map) == "assets/a.11111111.css?v=2"

    def test_empty_map_is_noop(self) -> None:
        assert rewrite_references("assets/a.css", {}) == "assets/a.css"

    def test_update_html_references_in_place(self, tmp_path: Path) -> None:
        """The file on disk is rewritten."""
        html = tmp_path / "index.html"
        html.write_text('<img src="assets/a.png">')

        update_html_references(html, {"assets/a.png": "assets/a.11111111.png"})

        assert html.read_text() == '<img src="assets/a.11111111.png">'


class TestAddCacheBuster:
    """Tests for add_cache_buster function."""

    def test_adds_query(self) -> None:
        assert add_cache_buster("/sw.js", "v4") == "/sw.js?v=v4"

    def test_appends_to_existing_query(self) -> None:
        assert add_cache_buster("/page?lang=en", "v4") == "/page?lang=en&v=v4"


class TestBuildAssets:
    """Tests for build_assets function."""

    def test_hashes_eligible_assets(self, site_root: Path) -> None:
        """Hashable files are renamed and recorded in the manifest."""
        manifest = build_assets(Config(), site_root, now=BUILD_TIME)

        css_hash = expected_hash(b"body { color: #B8375B; }")
        wave_hash = expected_hash(b"\x89PNGwave")
        assert manifest.assets["assets/css/style.css"] == f"assets/css/style.{css_hash}.css"
        assert manifest.assets["assets/images/dividers/wave.png"] == f"assets/images/dividers/wave.{wave_hash}.png"
        assert (site_root / "dist" / "assets" / "css" / f"style.{css_hash}.css").exists()
        assert not (site_root / "dist" / "assets" / "css" / "style.css").exists()

    def test_copies_other_assets_unchanged(self, site_root: Path) -> None:
        """Non-hashable files keep their names and skip the manifest."""
        manifest = build_assets(Config(), site_root, now=BUILD_TIME)

        assert (site_root / "dist" / "assets" / "fonts" / "LICENSE.txt").read_text() == "OFL"
        assert "assets/fonts/LICENSE.txt" not in manifest.assets

    def test_skips_hidden_files(self, site_root: Path) -> None:
        """Dotfiles are not copied."""
        build_assets(Config(), site_root, now=BUILD_TIME)

        assert not (site_root / "dist" / "assets" / ".DS_Store").exists()

    def test_rewrites_pages_and_index(self, site_root: Path) -> None:
        """HTML references match the manifest one-to-one."""
        manifest = build_assets(Config(), site_root, now=BUILD_TIME)

        gifts = (site_root / "dist" / "gifts.html").read_text()
        index = (site_root / "dist" / "index.html").read_text()
        assert manifest.assets["assets/css/style.css"] in gifts
        assert manifest.assets["assets/images/dividers/wave.png"] in gifts
        assert manifest.assets["assets/css/style.css"] in index
        assert manifest.assets["assets/images/hero-bg.jpg"] in index
        for original in manifest.assets:
            assert original not in gifts
            assert original not in index

    def test_only_html_pages_are_copied(self, site_root: Path) -> None:
        """Non-HTML files in the pages directory are ignored."""
        build_assets(Config(), site_root, now=BUILD_TIME)

        assert not (site_root / "dist" / "notes.txt").exists()

    def test_copies_extra_files(self, site_root: Path) -> None:
        """Root files that exist are copied; missing ones are skipped."""
        build_assets(Config(), site_root, now=BUILD_TIME)

        assert (site_root / "dist" / "robots.txt").read_text() == "User-agent: *"
        assert (site_root / "dist" / "CNAME").read_text() == "wedding.example"

    def test_hash_stable_across_builds(self, site_root: Path) -> None:
        """Rebuilding unchanged content yields identical hashed paths."""
        first = build_assets(Config(), site_root, now=BUILD_TIME)
        second = build_assets(Config(), site_root, now=datetime(2026, 6, 21, tzinfo=UTC))

        assert first.assets == second.assets
        assert first.version != second.version

    def test_writes_version_file_twice(self, site_root: Path) -> None:
        """version.json lands in the build dir and the project root."""
        manifest = build_assets(Config(), site_root, now=BUILD_TIME)

        for path in (site_root / "dist" / "version.json", site_root / "version.json"):
            data = json.loads(path.read_text())
            assert data == manifest.to_dict()
        assert manifest.version == str(int(BUILD_TIME.timestamp() * 1000))
        assert manifest.build_time == "2026-06-20T14:30:00.000Z"

    def test_content_version_strategy(self, site_root: Path) -> None:
        """Content versions are reproducible across build times."""
        config = Config(build=BuildConfig(version_strategy="content"))

        first = build_assets(config, site_root, now=BUILD_TIME)
        second = build_assets(config, site_root, now=datetime(2026, 6, 21, tzinfo=UTC))

        assert first.version == second.version
        assert len(first.version) == 8

    def test_writes_service_worker_with_version(self, site_root: Path) -> None:
        """sw.js embeds the build version and precaches the app shell."""
        manifest = build_assets(Config(), site_root, now=BUILD_TIME)

        sw = (site_root / "dist" / "sw.js").read_text()
        assert f'const SW_VERSION = "{manifest.version}";' in sw
        assert '"/index.html"' in sw
        assert '"/gifts.html"' in sw
        assert f'"/{manifest.assets["assets/css/style.css"]}"' in sw
        assert f'"/{manifest.assets["assets/fonts/inter.woff2"]}"' in sw
        # images are cached at runtime, not precached
        assert manifest.assets["assets/images/hero-bg.jpg"] not in sw

    def test_writes_update_notifiers(self, site_root: Path) -> None:
        """Both update notifier scripts are written."""
        build_assets(Config(), site_root, now=BUILD_TIME)

        assert "CHECK_VERSION" in (site_root / "dist" / "sw-registration.js").read_text()
        assert "/version.json" in (site_root / "dist" / "version-check.js").read_text()

    def test_generates_manifest_json_when_missing(self, site_root: Path) -> None:
        """A web app manifest is rendered if the site has none."""
        manifest = build_assets(Config(), site_root, now=BUILD_TIME)

        web_manifest = json.loads((site_root / "dist" / "manifest.json").read_text())
        assert web_manifest["name"] == Config().site.name
        assert web_manifest["version"] == manifest.version

    def test_generated_manifest_json_refreshed_on_rebuild(self, site_root: Path) -> None:
        """A rebuild over an existing dist/ updates the generated manifest."""
        build_assets(Config(), site_root, now=datetime(2024, 1, 1, tzinfo=UTC))
        second = build_assets(Config(), site_root, now=datetime(2024, 6, 1, tzinfo=UTC))

        web_manifest = json.loads((site_root / "dist" / "manifest.json").read_text())
        assert web_manifest["version"] == second.version == "1717200000000"

    def test_keeps_existing_manifest_json(self, site_root: Path) -> None:
        """A site-provided manifest.json is copied as-is."""
        (site_root / "manifest.json").write_text('{"name": "Custom"}')

        build_assets(Config(), site_root, now=BUILD_TIME)

        assert json.loads((site_root / "dist" / "manifest.json").read_text()) == {"name": "Custom"}

    def test_missing_assets_dir_raises(self, tmp_path: Path) -> None:
        """BuildError is raised when there is nothing to build."""
        with pytest.raises(BuildError, match="Assets directory not found"):
            build_assets(Config(), tmp_path)

    def test_missing_pages_dir_is_skipped(self, site_root: Path) -> None:
        """A site without pages/ still builds."""
        for page in (site_root / "pages").iterdir():
            page.unlink()
        (site_root / "pages").rmdir()

        manifest = build_assets(Config(), site_root, now=BUILD_TIME)

        assert "assets/css/style.css" in manifest.assets
