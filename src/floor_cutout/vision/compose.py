"""Mask rendering and cut-out compositing."""

from __future__ import annotations

import io
from pathlib import Path

import numpy as np
from PIL import Image

from .image import ensure_dir
from .types import MaskCandidates, RenderedMask, SourceImage

HIGHLIGHT_RGB: tuple[int, int, int] = (0, 114, 189)


def render_mask(
    candidates: MaskCandidates,
    index: int,
    color: tuple[int, int, int] = HIGHLIGHT_RGB,
) -> RenderedMask:
    """Render candidate `index` as RGBA: `color` at alpha 255 inside, transparent outside."""
    if not 0 <= index < candidates.count:
        raise IndexError(f"Candidate index {index} out of range for {candidates.count} masks")
    sel = candidates.data[:, :, index] == 1
    rgba = np.zeros((candidates.height, candidates.width, 4), dtype=np.uint8)
    rgba[sel] = (*color, 255)
    return RenderedMask(rgba=rgba)


def composite_cutout(rendered: RenderedMask, source: SourceImage) -> np.ndarray:
    """Cut `source` out with `rendered`.

    Returns:
        ``H×W×4`` uint8 array: source RGB at alpha 255 where the mask alpha is
        non-zero, fully transparent elsewhere.

    Raises:
        ValueError: If the mask and the image sizes differ.
    """
    if (rendered.height, rendered.width) != (source.height, source.width):
        raise ValueError(
            f"Mask size {rendered.width}x{rendered.height} does not match "
            f"image size {source.width}x{source.height}"
        )
    keep = rendered.rgba[:, :, 3] > 0
    out = np.zeros_like(rendered.rgba)
    out[keep, :3] = source.pixels[keep]
    out[keep, 3] = 255
    return out


def cutout_to_png_bytes(cutout: np.ndarray) -> bytes:
    """Encode an RGBA cut-out as PNG bytes."""
    buf = io.BytesIO()
    Image.fromarray(cutout).save(buf, format="PNG")
    return buf.getvalue()


def save_cutout(cutout: np.ndarray, out_path: Path) -> Path:
    """Write an RGBA cut-out to `out_path` as a transparent PNG."""
    ensure_dir(out_path.parent)
    Image.fromarray(cutout).save(out_path, format="PNG")
    return out_path
