from __future__ import annotations

import numpy as np
import pytest

from floor_cutout.vision.scoring import is_weak, score_candidate, select_floor_mask
from floor_cutout.vision.types import MaskCandidates, SelectionResult


def _stack(*planes: np.ndarray) -> np.ndarray:
    return np.stack(planes, axis=-1).astype(np.uint8)


def test_bottom_row_only_mask_ratios() -> None:
    m = np.zeros((4, 4), dtype=np.uint8)
    m[3, :] = 1
    cands = MaskCandidates(data=_stack(m), scores=(0.42,))

    assert score_candidate(cands, 0) == (1.0, 0.25)
    sel = select_floor_mask(cands)
    assert sel == SelectionResult(index=0, bottom_ratio=1.0, area_ratio=0.25, score=0.42)


def test_area_breaks_tie_on_bottom_coverage() -> None:
    a = np.zeros((4, 4), dtype=np.uint8)
    a[3, :] = 1
    b = np.zeros((4, 4), dtype=np.uint8)
    b[2:, :] = 1
    sel = select_floor_mask(MaskCandidates(data=_stack(a, b), scores=(0.9, 0.1)))
    assert sel.index == 1
    assert sel.bottom_ratio == 1.0
    assert sel.area_ratio == 0.5


def test_bottom_coverage_beats_larger_area() -> None:
    ceiling = np.zeros((4, 4), dtype=np.uint8)
    ceiling[:3, :] = 1
    floor = np.zeros((4, 4), dtype=np.uint8)
    floor[3, :2] = 1
    sel = select_floor_mask(MaskCandidates(data=_stack(ceiling, floor), scores=(0.99, 0.2)))
    assert sel.index == 1
    assert sel.bottom_ratio == 0.5
    assert sel.score == pytest.approx(0.2)


def test_exact_tie_keeps_lowest_index() -> None:
    m = np.zeros((3, 5), dtype=np.uint8)
    m[2, 1:4] = 1
    cands = MaskCandidates(data=_stack(m, m.copy(), m.copy()), scores=(0.1, 0.2, 0.3))
    sel = select_floor_mask(cands)
    assert sel.index == 0


def test_empty_masks_select_first_candidate() -> None:
    empty = np.zeros((3, 3), dtype=np.uint8)
    sel = select_floor_mask(MaskCandidates(data=_stack(empty, empty), scores=(0.5, 0.6)))
    assert sel.index == 0
    assert sel.bottom_ratio == 0.0
    assert sel.area_ratio == 0.0


@pytest.mark.parametrize("seed", [0, 1, 2, 3, 4])
def test_selection_is_maximal_bottom_then_area(seed: int) -> None:
    rng = np.random.default_rng(seed)
    data = rng.integers(0, 2, size=(6, 5, 4)).astype(np.uint8)
    cands = MaskCandidates(data=data, scores=(0.0, 0.0, 0.0, 0.0))

    metrics = [score_candidate(cands, m) for m in range(cands.count)]
    sel = select_floor_mask(cands)

    best_bottom = max(b for b, _ in metrics)
    assert sel.bottom_ratio == best_bottom
    tied = [a for b, a in metrics if b == best_bottom]
    assert sel.area_ratio == max(tied)
    assert 0.0 <= sel.bottom_ratio <= 1.0
    assert 0.0 <= sel.area_ratio <= 1.0


def test_score_candidate_rejects_bad_index() -> None:
    cands = MaskCandidates(data=np.zeros((2, 2, 1), dtype=np.uint8), scores=(0.0,))
    with pytest.raises(IndexError):
        score_candidate(cands, 1)


def test_mask_candidates_validation() -> None:
    with pytest.raises(ValueError, match="scores"):
        MaskCandidates(data=np.zeros((2, 2, 2), dtype=np.uint8), scores=(0.1,))
    with pytest.raises(ValueError, match="At least one"):
        MaskCandidates(data=np.zeros((2, 2, 0), dtype=np.uint8), scores=())
    with pytest.raises(ValueError, match="HxWxM"):
        MaskCandidates(data=np.zeros((2, 2), dtype=np.uint8), scores=(0.1,))
    with pytest.raises(ValueError, match="empty frame"):
        MaskCandidates(data=np.zeros((0, 4, 1), dtype=np.uint8), scores=(0.1,))
    with pytest.raises(ValueError, match="empty frame"):
        MaskCandidates(data=np.zeros((4, 0, 1), dtype=np.uint8), scores=(0.1,))


def test_score_candidate_agrees_with_selection() -> None:
    rng = np.random.default_rng(7)
    cands = MaskCandidates(
        data=rng.integers(0, 2, size=(5, 7, 3)).astype(np.uint8), scores=(0.0, 0.0, 0.0)
    )
    sel = select_floor_mask(cands)
    assert score_candidate(cands, sel.index) == (sel.bottom_ratio, sel.area_ratio)


def test_is_weak_thresholds() -> None:
    ok = SelectionResult(index=0, bottom_ratio=0.2, area_ratio=0.2)
    low_bottom = SelectionResult(index=0, bottom_ratio=0.05, area_ratio=0.5)
    low_area = SelectionResult(index=0, bottom_ratio=0.5, area_ratio=0.05)
    assert not is_weak(ok, min_bottom=0.08, min_area=0.08)
    assert is_weak(low_bottom, min_bottom=0.08, min_area=0.08)
    assert is_weak(low_area, min_bottom=0.08, min_area=0.08)
