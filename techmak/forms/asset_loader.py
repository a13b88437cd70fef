"""
Logo loader for the quotation header.

The header (and therefore the logo) is redrawn on every page, so the loader
reads the source once and hands back the same decoded image afterwards.
One LogoLoader per document; nothing is shared between requests.
"""

import io
import os
import logging
from typing import Optional

import requests
from reportlab.lib.utils import ImageReader

from techmak.core.errors import AssetUnavailable

log = logging.getLogger("techmak.assets")

FETCH_TIMEOUT = 10


class LogoAsset:
    """Decoded logo with its intrinsic pixel size."""

    def __init__(self, image: ImageReader, width: int, height: int, source: str = ""):
        self.image = image
        self.width = width
        self.height = height
        self.source = source

    def scaled(self, factor: float, max_width: Optional[float] = None,
               max_height: Optional[float] = None) -> tuple:
        """Render size (points) at a fixed scale factor, clamped to an optional box."""
        w, h = self.width * factor, self.height * factor
        limits = [1.0]
        if max_width and w > max_width:
            limits.append(max_width / w)
        if max_height and h > max_height:
            limits.append(max_height / h)
        shrink = min(limits)
        return w * shrink, h * shrink


def default_logo_source() -> str:
    """TECHMAK_LOGO_SOURCE, falling back to DATA_DIR/techmak_logo.png."""
    from techmak.core.secrets import get_key
    from techmak.core.paths import LOGO_PATH
    return get_key("logo_source") or LOGO_PATH


def _is_url(source: str) -> bool:
    return source.lower().startswith(("http://", "https://"))


def read_source(source: str) -> bytes:
    """Raw bytes from a URL or a local file."""
    if not source:
        raise AssetUnavailable("No logo source configured")
    if _is_url(source):
        try:
            resp = requests.get(source, timeout=FETCH_TIMEOUT)
            resp.raise_for_status()
        except requests.exceptions.Timeout:
            raise AssetUnavailable(f"Logo fetch timed out: {source}")
        except requests.exceptions.RequestException as e:
            raise AssetUnavailable(f"Logo fetch failed: {e}")
        return resp.content
    if not os.path.isfile(source):
        raise AssetUnavailable(f"Logo not found: {source}")
    try:
        with open(source, "rb") as f:
            return f.read()
    except OSError as e:
        raise AssetUnavailable(f"Logo read failed: {e}")


def decode_image(data: bytes, source: str = "") -> LogoAsset:
    """Decode PNG/JPEG bytes into a LogoAsset."""
    if not data:
        raise AssetUnavailable(f"Logo is empty: {source}")
    try:
        img = ImageReader(io.BytesIO(data))
        width, height = img.getSize()
    except Exception as e:
        raise AssetUnavailable(f"Logo is not a valid image ({source}): {e}")
    if not width or not height:
        raise AssetUnavailable(f"Logo has no pixels: {source}")
    return LogoAsset(img, int(width), int(height), source)


class LogoLoader:
    """Reads and decodes the logo on first use, then returns the cached asset."""

    def __init__(self, source: Optional[str] = None):
        self.source = source if source is not None else default_logo_source()
        self._asset: Optional[LogoAsset] = None
        self.reads = 0

    def load(self) -> LogoAsset:
        if self._asset is None:
            self.reads += 1
            data = read_source(self.source)
            self._asset = decode_image(data, self.source)
            log.debug("Logo loaded from %s (%dx%d px)", self.source,
                      self._asset.width, self._asset.height)
        return self._asset
