"""Floor-likeness scoring of candidate masks."""

from __future__ import annotations

import numpy as np

from .types import MaskCandidates, SelectionResult


def _counts(candidates: MaskCandidates) -> tuple[np.ndarray, np.ndarray]:
    """Return per-candidate (bottom_row_count, total_area) as int arrays."""
    on = candidates.data == 1
    bottom = on[-1, :, :].sum(axis=0)
    area = on.sum(axis=(0, 1))
    return bottom.astype(np.int64), area.astype(np.int64)


def score_candidate(candidates: MaskCandidates, m: int) -> tuple[float, float]:
    """Return ``(bottom_ratio, area_ratio)`` for candidate `m`.

    The bottom ratio is the share of the last pixel row claimed by the mask,
    the area ratio the share of the whole frame.
    """
    if not 0 <= m < candidates.count:
        raise IndexError(f"Candidate index {m} out of range for {candidates.count} masks")
    h, w = candidates.height, candidates.width
    bottom, area = _counts(candidates)
    return int(bottom[m]) / w, int(area[m]) / (w * h)


def select_floor_mask(candidates: MaskCandidates) -> SelectionResult:
    """Pick the candidate that most looks like a floor.

    Candidates touching more of the bottom edge win; area breaks ties. The
    comparison is strict so the lowest index wins an exact tie.
    """
    h, w = candidates.height, candidates.width
    bottom, area = _counts(candidates)

    best = 0
    best_bottom = -1
    best_area = -1
    for m in range(candidates.count):
        b, a = int(bottom[m]), int(area[m])
        if b > best_bottom or (b == best_bottom and a > best_area):
            best, best_bottom, best_area = m, b, a

    return SelectionResult(
        index=best,
        bottom_ratio=best_bottom / w,
        area_ratio=best_area / (w * h),
        score=float(candidates.scores[best]),
    )


def is_weak(selection: SelectionResult, *, min_bottom: float, min_area: float) -> bool:
    """True when a selection fails either quality threshold."""
    return selection.bottom_ratio < min_bottom or selection.area_ratio < min_area


def quality_key(selection: SelectionResult) -> tuple[float, float]:
    """Ordering key matching :func:`select_floor_mask` (bottom first, then area)."""
    return selection.bottom_ratio, selection.area_ratio
