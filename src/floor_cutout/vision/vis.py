"""Visualization helpers for floor masks."""

from __future__ import annotations

from pathlib import Path

import numpy as np
from PIL import Image, ImageDraw

from .types import BoxPrompt, PointPrompt, Prompt, RenderedMask, SourceImage


def overlay_mask(source: SourceImage, rendered: RenderedMask, opacity: float = 0.5) -> Image.Image:
    """Blend the rendered mask over the source image."""
    base = source.to_pil().convert("RGBA")
    layer = rendered.rgba.copy()
    layer[:, :, 3] = (layer[:, :, 3].astype(np.float32) * opacity).astype(np.uint8)
    return Image.alpha_composite(base, Image.fromarray(layer)).convert("RGB")


def draw_prompt(
    img: Image.Image,
    prompt: Prompt,
    *,
    scale: tuple[float, float] = (1.0, 1.0),
) -> Image.Image:
    """Draw prompt geometry on a copy of `img`.

    `scale` maps reshaped coordinates to `img` pixels as ``(sx, sy)``.
    """
    vis = img.copy()
    dr = ImageDraw.Draw(vis)
    sx, sy = scale
    w, h = vis.size
    r = max(3, round(min(w, h) / 150))
    if isinstance(prompt, PointPrompt):
        for p in prompt.points:
            color = (60, 179, 113) if p.label == 1 else (220, 20, 60)
            cx, cy = p.x * sx, p.y * sy
            dr.ellipse([cx - r, cy - r, cx + r, cy + r], fill=color, outline=(255, 255, 255))
    elif isinstance(prompt, BoxPrompt):
        dr.rectangle(
            [prompt.x0 * sx, prompt.y0 * sy, prompt.x1 * sx, prompt.y1 * sy],
            outline=(255, 165, 0),
            width=max(2, r // 2),
        )
    return vis


def save_overlay(
    source: SourceImage,
    rendered: RenderedMask,
    out_path: Path,
    *,
    prompt: Prompt | None = None,
    scale: tuple[float, float] = (1.0, 1.0),
) -> None:
    """Save a mask overlay (and optionally the prompt) to `out_path`."""
    vis = overlay_mask(source, rendered)
    if prompt is not None:
        vis = draw_prompt(vis, prompt, scale=scale)
    vis.save(out_path)


def save_mask(rendered: RenderedMask, out_path: Path) -> None:
    """Save the binary mask (alpha channel) as an 8-bit PNG."""
    Image.fromarray(rendered.rgba[:, :, 3]).save(out_path)
