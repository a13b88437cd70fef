"""
Tests for techmak/forms/asset_loader.py: logo reading, decoding, memoisation.
Network access is replaced with a fake requests.get.
"""
import pytest
import requests

from techmak.core.errors import AssetUnavailable
from techmak.forms import asset_loader
from techmak.forms.asset_loader import (
    LogoAsset, LogoLoader, decode_image, default_logo_source, read_source,
)


class _FakeResponse:
    def __init__(self, content=b"", status=200):
        self.content = content
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error")


class _FakeGet:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def __call__(self, url, timeout=None):
        self.calls.append((url, timeout))
        if self.exc:
            raise self.exc
        return self.response


# ═══════════════════════════════════════════════════════════════════════════════
# Sources
# ═══════════════════════════════════════════════════════════════════════════════

class TestReadSource:

    def test_local_file(self, logo_path):
        assert read_source(logo_path).startswith(b"\x89PNG")

    def test_missing_file(self, tmp_path):
        with pytest.raises(AssetUnavailable):
            read_source(str(tmp_path / "nope.png"))

    def test_empty_source(self):
        with pytest.raises(AssetUnavailable):
            read_source("")

    def test_url_uses_timeout(self, monkeypatch, png_factory):
        fake = _FakeGet(_FakeResponse(png_factory()))
        monkeypatch.setattr(asset_loader.requests, "get", fake)
        data = read_source("https://cdn.example.com/logo.png")
        assert data.startswith(b"\x89PNG")
        assert fake.calls == [("https://cdn.example.com/logo.png", asset_loader.FETCH_TIMEOUT)]

    def test_url_http_error(self, monkeypatch):
        monkeypatch.setattr(asset_loader.requests, "get",
                            _FakeGet(_FakeResponse(b"", status=404)))
        with pytest.raises(AssetUnavailable):
            read_source("https://cdn.example.com/missing.png")

    def test_url_timeout(self, monkeypatch):
        monkeypatch.setattr(asset_loader.requests, "get",
                            _FakeGet(exc=requests.exceptions.Timeout()))
        with pytest.raises(AssetUnavailable, match="timed out"):
            read_source("https://cdn.example.com/slow.png")

    def test_url_connection_error(self, monkeypatch):
        monkeypatch.setattr(asset_loader.requests, "get",
                            _FakeGet(exc=requests.exceptions.ConnectionError("refused")))
        with pytest.raises(AssetUnavailable):
            read_source("http://localhost:1/logo.png")


class TestDefaultSource:

    def test_falls_back_to_data_dir(self, logo_path):
        assert default_logo_source() == logo_path

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("TECHMAK_LOGO_SOURCE", "https://cdn.example.com/logo.png")
        assert default_logo_source() == "https://cdn.example.com/logo.png"


# ═══════════════════════════════════════════════════════════════════════════════
# Decoding + scaling
# ═══════════════════════════════════════════════════════════════════════════════

class TestDecode:

    def test_png_size(self, png_factory):
        asset = decode_image(png_factory(size=(200, 100)), "mem")
        assert (asset.width, asset.height) == (200, 100)

    def test_not_an_image(self):
        with pytest.raises(AssetUnavailable):
            decode_image(b"definitely not a png", "junk")

    def test_empty_bytes(self):
        with pytest.raises(AssetUnavailable):
            decode_image(b"", "empty")


class TestScaled:

    def test_fixed_factor(self):
        assert LogoAsset(None, 200, 100).scaled(0.25) == (50, 25)

    def test_clamped_to_box_keeps_ratio(self):
        w, h = LogoAsset(None, 400, 100).scaled(1.0, max_width=100, max_height=100)
        assert (w, h) == (100, 25)

    def test_clamped_by_height(self):
        w, h = LogoAsset(None, 100, 400).scaled(1.0, max_width=100, max_height=100)
        assert (w, h) == (25, 100)


# ═══════════════════════════════════════════════════════════════════════════════
# Loader
# ═══════════════════════════════════════════════════════════════════════════════

class TestLogoLoader:

    def test_reads_once(self, logo_path):
        loader = LogoLoader(logo_path)
        first = loader.load()
        for _ in range(5):
            assert loader.load() is first
        assert loader.reads == 1

    def test_remote_fetched_once(self, monkeypatch, png_factory):
        fake = _FakeGet(_FakeResponse(png_factory()))
        monkeypatch.setattr(asset_loader.requests, "get", fake)
        loader = LogoLoader("https://cdn.example.com/logo.png")
        loader.load()
        loader.load()
        assert len(fake.calls) == 1

    def test_default_source(self, logo_path):
        assert LogoLoader().source == logo_path

    def test_failure_propagates(self, tmp_path):
        with pytest.raises(AssetUnavailable):
            LogoLoader(str(tmp_path / "gone.png")).load()
