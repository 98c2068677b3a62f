"""Image I/O: decoding sources into RGB buffers."""

from __future__ import annotations

import base64
import io
from collections.abc import Callable
from pathlib import Path

import httpx
from PIL import Image

from .types import SourceImage

ImageSource = SourceImage | Image.Image | Path | str | bytes


def ensure_dir(p: Path) -> None:
    """Create `p` if it doesn't exist."""
    p.mkdir(parents=True, exist_ok=True)


def read_image(path: Path) -> Image.Image:
    """Read an image from disk and convert it to RGB."""
    return Image.open(path).convert("RGB")


def decode_image_bytes(data: bytes) -> Image.Image:
    """Decode encoded image bytes (PNG, JPEG, ...) to an RGB image."""
    return Image.open(io.BytesIO(data)).convert("RGB")


def _decode_data_url(url: str) -> bytes:
    header, _, payload = url.partition(",")
    if not payload:
        raise ValueError("Malformed data URL: missing payload")
    if header.endswith(";base64"):
        return base64.b64decode(payload)
    return payload.encode("latin-1")


def fetch_image_bytes(
    url: str,
    *,
    client_factory: Callable[..., httpx.Client] = httpx.Client,
    timeout_s: float = 60.0,
) -> bytes:
    """Download `url` and return the response body.

    Raises:
        httpx.HTTPError: If the request fails.
    """
    with client_factory(timeout=timeout_s, follow_redirects=True) as client:
        resp = client.get(url)
        resp.raise_for_status()
        return resp.content


def load_image(
    src: ImageSource,
    *,
    client_factory: Callable[..., httpx.Client] = httpx.Client,
) -> SourceImage:
    """Decode `src` into a :class:`SourceImage`.

    Accepts a decoded image, raw encoded bytes, a ``data:`` URL, an
    ``http(s)://`` URL or a filesystem path.
    """
    if isinstance(src, SourceImage):
        return src
    if isinstance(src, Image.Image):
        return SourceImage.from_pil(src)
    if isinstance(src, bytes):
        return SourceImage.from_pil(decode_image_bytes(src))
    if isinstance(src, str):
        if src.startswith("data:"):
            return SourceImage.from_pil(decode_image_bytes(_decode_data_url(src)))
        if src.startswith(("http://", "https://")):
            data = fetch_image_bytes(src, client_factory=client_factory)
            return SourceImage.from_pil(decode_image_bytes(data))
        src = Path(src)
    return SourceImage.from_pil(read_image(Path(src).expanduser()))
