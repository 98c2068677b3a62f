from __future__ import annotations

import pytest

from floor_cutout.vision.prompts import (
    FloorPromptParams,
    build_box_prompt,
    build_point_prompt,
    build_prompt,
)
from floor_cutout.vision.types import BoxPrompt, PointPrompt


def test_baseline_point_prompt_is_scaled_to_reshaped_frame() -> None:
    prompt = build_point_prompt(480, 640)

    assert len(prompt.positives) == 9
    assert len(prompt.negatives) == 7
    first = prompt.positives[0]
    assert first.x == pytest.approx(0.10 * 640)
    assert first.y == pytest.approx(0.62 * 480)
    # The lowest anchor sits just above the last row.
    assert max(p.y for p in prompt.positives) == pytest.approx(0.985 * 480)
    for p in prompt.points:
        assert 0.0 <= p.x <= 640
        assert 0.0 <= p.y <= 480


def test_positives_are_below_negatives() -> None:
    prompt = build_point_prompt(1000, 1000)
    assert min(p.y for p in prompt.positives) > max(p.y for p in prompt.negatives)


def test_strong_pass_moves_floor_row_down_and_widens_mid_band() -> None:
    base = build_point_prompt(1000, 800)
    strong = build_point_prompt(1000, 800, strong=True)

    base_row = min(p.y for p in base.positives)
    strong_row = min(p.y for p in strong.positives)
    assert base_row == pytest.approx(620.0)
    assert strong_row == pytest.approx(720.0)

    mid_base = [p for p in base.negatives if p.y == pytest.approx(550.0)]
    mid_strong = [p for p in strong.negatives if p.y == pytest.approx(550.0)]
    assert len(mid_base) == 3
    assert len(mid_strong) == 5


def test_mid_band_can_be_disabled() -> None:
    prompt = build_point_prompt(100, 100, params=FloorPromptParams(use_mid_band=False))
    assert len(prompt.negatives) == 4
    assert len(prompt.positives) == 9


def test_box_prompt_spans_full_width_from_floor_start() -> None:
    box = build_prompt(480, 640, params=FloorPromptParams(mode="box"))
    assert isinstance(box, BoxPrompt)
    assert box.x0 == 0.0
    assert box.x1 == 639.0
    assert box.y0 == pytest.approx(0.45 * 480)
    assert box.y1 == 479.0

    strong = build_prompt(480, 640, strong=True, params=FloorPromptParams(mode="box"))
    assert isinstance(strong, BoxPrompt)
    assert strong.y0 == pytest.approx(0.55 * 480)


def test_points_mode_is_default() -> None:
    assert isinstance(build_prompt(64, 64), PointPrompt)


@pytest.mark.parametrize(
    ("h", "w", "y0"),
    [(1, 10, 0.5), (10, 1, 0.5), (10, 10, 1.0), (10, 10, -0.1)],
)
def test_degenerate_box_is_rejected(h: int, w: int, y0: float) -> None:
    with pytest.raises(ValueError):
        build_box_prompt(h, w, floor_y_start=y0)


def test_unknown_mode_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown prompt mode"):
        build_prompt(10, 10, params=FloorPromptParams(mode="scribble"))  # type: ignore[arg-type]
