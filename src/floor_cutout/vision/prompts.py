"""Prompt synthesis biased toward the floor region of a photo.

Fractions are always scaled to the reshaped frame before being handed to the
model; SAM expects absolute pixel coordinates in that frame.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .types import NEGATIVE, POSITIVE, BoxPrompt, PointPrompt, Prompt, PromptPoint

PromptMode = Literal["points", "box"]

_FLOOR_ROW_XS: tuple[float, ...] = (0.10, 0.30, 0.50, 0.70, 0.90)

# Anchors near the camera edge, where the floor almost always is.
_BOTTOM_ANCHORS: tuple[tuple[float, float], ...] = (
    (0.20, 0.92),
    (0.50, 0.95),
    (0.80, 0.92),
    (0.50, 0.985),
)

# Ceiling / upper wall.
_CEILING_NEGATIVES: tuple[tuple[float, float], ...] = (
    (0.10, 0.10),
    (0.50, 0.10),
    (0.90, 0.10),
    (0.50, 0.28),
)

_MID_BAND_XS: tuple[float, ...] = (0.20, 0.50, 0.80)
_MID_BAND_XS_STRONG: tuple[float, ...] = (0.10, 0.30, 0.50, 0.70, 0.90)


@dataclass(frozen=True, slots=True, kw_only=True)
class FloorPromptParams:
    """Prompt geometry, as fractions of the reshaped frame."""

    mode: PromptMode = "points"
    floor_start_y: float = 0.62
    # Second pass: push positives further down.
    floor_strong_y: float = 0.72
    # Band where furniture usually sits.
    mid_block_y: float = 0.55
    use_mid_band: bool = True
    box_start_y: float = 0.45
    box_strong_start_y: float = 0.55


def _scaled(frac_x: float, frac_y: float, w: int, h: int, label: int) -> PromptPoint:
    return PromptPoint(x=frac_x * w, y=frac_y * h, label=label)


def build_point_prompt(
    reshaped_h: int,
    reshaped_w: int,
    *,
    strong: bool = False,
    params: FloorPromptParams | None = None,
) -> PointPrompt:
    """Build the floor point constellation for the baseline or strong pass.

    Positives run along a floor row plus a few anchors near the bottom edge.
    Negatives cover the ceiling and, with ``use_mid_band``, a furniture band;
    the strong pass spreads that band over more columns.
    """
    params = params or FloorPromptParams()
    _check_size(reshaped_h, reshaped_w)
    h, w = reshaped_h, reshaped_w

    y_floor = params.floor_strong_y if strong else params.floor_start_y
    pos = [(x, y_floor) for x in _FLOOR_ROW_XS] + list(_BOTTOM_ANCHORS)

    neg = list(_CEILING_NEGATIVES)
    if params.use_mid_band:
        xs = _MID_BAND_XS_STRONG if strong else _MID_BAND_XS
        neg += [(x, params.mid_block_y) for x in xs]

    points = [_scaled(x, y, w, h, POSITIVE) for x, y in pos]
    points += [_scaled(x, y, w, h, NEGATIVE) for x, y in neg]
    return PointPrompt(points=tuple(points))


def build_box_prompt(
    reshaped_h: int,
    reshaped_w: int,
    *,
    floor_y_start: float,
) -> BoxPrompt:
    """Build a full-width box from ``H * floor_y_start`` down to the last row."""
    _check_size(reshaped_h, reshaped_w)
    if not 0.0 <= floor_y_start < 1.0:
        raise ValueError(f"floor_y_start must be in [0, 1), got {floor_y_start}")

    box = BoxPrompt(
        x0=0.0,
        y0=reshaped_h * floor_y_start,
        x1=float(reshaped_w - 1),
        y1=float(reshaped_h - 1),
    )
    if box.area() <= 0.0:
        raise ValueError(
            f"Degenerate floor box for size {reshaped_w}x{reshaped_h} "
            f"and floor_y_start={floor_y_start}"
        )
    return box


def build_prompt(
    reshaped_h: int,
    reshaped_w: int,
    *,
    strong: bool = False,
    params: FloorPromptParams | None = None,
) -> Prompt:
    """Build the prompt for a pass according to ``params.mode``."""
    params = params or FloorPromptParams()
    if params.mode == "box":
        y0 = params.box_strong_start_y if strong else params.box_start_y
        return build_box_prompt(reshaped_h, reshaped_w, floor_y_start=y0)
    if params.mode == "points":
        return build_point_prompt(reshaped_h, reshaped_w, strong=strong, params=params)
    raise ValueError(f"Unknown prompt mode: {params.mode!r}")


def _check_size(h: int, w: int) -> None:
    if h < 2 or w < 2:
        raise ValueError(f"Reshaped size too small for a floor prompt: {w}x{h}")
