"""Automatic floor segmentation: two-pass prompting and the per-image session."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import httpx
import numpy as np

from floor_cutout.vision.compose import (
    HIGHLIGHT_RGB,
    composite_cutout,
    render_mask,
    save_cutout,
)
from floor_cutout.vision.image import ImageSource, load_image
from floor_cutout.vision.prompts import FloorPromptParams, build_prompt
from floor_cutout.vision.scoring import is_weak, quality_key, select_floor_mask
from floor_cutout.vision.types import (
    Embedding,
    MaskCandidates,
    ProcessedImage,
    Prompt,
    RenderedMask,
    SelectionResult,
    SourceImage,
)

LOG = logging.getLogger(__name__)


class SupportsFloorSam(Protocol):
    """Protocol for a promptable segmenter with a reusable image embedding."""

    def preprocess(self, source: SourceImage, size_hint: int | None = None) -> ProcessedImage:
        """Resize/normalize an image for the encoder."""
        ...

    def embed(self, processed: ProcessedImage) -> Embedding:
        """Compute the image embedding."""
        ...

    def infer(
        self, embedding: Embedding, prompt: Prompt, processed: ProcessedImage
    ) -> MaskCandidates:
        """Decode candidate masks in the original image frame."""
        ...


@dataclass(frozen=True, slots=True, kw_only=True)
class AutoFloorParams:
    """Tuning knobs for automatic floor selection."""

    prompt: FloorPromptParams = FloorPromptParams()
    # Share of the bottom row the chosen mask must cover (0.05–0.15 works).
    min_bottom_coverage: float = 0.08
    # Share of the frame the chosen mask must cover (0.05–0.20 works).
    min_area_ratio: float = 0.08
    # Longest-edge hint for the preprocessor; None keeps the model default.
    processor_size: int | None = 640
    # Keep pass 1 when pass 2 scores worse instead of always taking pass 2.
    keep_better_pass: bool = False
    highlight_rgb: tuple[int, int, int] = HIGHLIGHT_RGB


@dataclass(frozen=True)
class PassResult:
    """One prompt → inference → score cycle."""

    pass_index: int
    prompt: Prompt
    candidates: MaskCandidates
    selection: SelectionResult


@dataclass(frozen=True)
class FloorResult:
    """Final floor selection for an image."""

    selection: SelectionResult
    candidates: MaskCandidates
    prompt: Prompt
    passes: tuple[PassResult, ...]
    rendered: RenderedMask

    @property
    def retried(self) -> bool:
        return len(self.passes) > 1


def format_status(selection: SelectionResult) -> str:
    """Human-readable summary of a selection."""
    return (
        f"Auto-floor mask (score: {selection.score:.2f}"
        f" | bottom {selection.bottom_ratio * 100:.1f}%"
        f" | area {selection.area_ratio * 100:.1f}%)"
    )


def run_pass(
    segmenter: SupportsFloorSam,
    processed: ProcessedImage,
    embedding: Embedding,
    *,
    pass_index: int,
    params: AutoFloorParams,
) -> PassResult:
    """Build the prompt for `pass_index`, decode and pick the most floor-like mask."""
    prompt = build_prompt(
        processed.reshaped_h,
        processed.reshaped_w,
        strong=pass_index > 1,
        params=params.prompt,
    )
    candidates = segmenter.infer(embedding, prompt, processed)
    selection = select_floor_mask(candidates)
    LOG.info(
        "Pass %d: candidate %d/%d score=%.3f bottom=%.3f area=%.3f",
        pass_index,
        selection.index,
        candidates.count,
        selection.score,
        selection.bottom_ratio,
        selection.area_ratio,
    )
    return PassResult(
        pass_index=pass_index,
        prompt=prompt,
        candidates=candidates,
        selection=selection,
    )


def auto_floor_segment(
    segmenter: SupportsFloorSam,
    processed: ProcessedImage,
    embedding: Embedding,
    *,
    params: AutoFloorParams | None = None,
    on_status: Callable[[str], None] | None = None,
) -> FloorResult:
    """Segment the floor with at most two inference passes.

    Pass 2 (strong prompt) runs only when pass 1 misses either quality
    threshold. Its result replaces pass 1 even if it scores worse, unless
    ``params.keep_better_pass`` is set.
    """
    params = params or AutoFloorParams()

    def status(msg: str) -> None:
        if on_status is not None:
            on_status(msg)

    status("Auto-detecting floor (pass 1)...")
    first = run_pass(segmenter, processed, embedding, pass_index=1, params=params)
    passes = [first]
    final = first

    if is_weak(
        first.selection,
        min_bottom=params.min_bottom_coverage,
        min_area=params.min_area_ratio,
    ):
        status("Auto-detecting floor (pass 2)...")
        second = run_pass(segmenter, processed, embedding, pass_index=2, params=params)
        passes.append(second)
        final = second
        if params.keep_better_pass and quality_key(first.selection) > quality_key(second.selection):
            LOG.info("Pass 2 scored worse than pass 1; keeping pass 1")
            final = first

    rendered = render_mask(final.candidates, final.selection.index, params.highlight_rgb)
    status(format_status(final.selection))
    return FloorResult(
        selection=final.selection,
        candidates=final.candidates,
        prompt=final.prompt,
        passes=tuple(passes),
        rendered=rendered,
    )


class FloorSession:
    """Per-image state: source, processed image, embedding and the current mask.

    State is replaced wholesale on every image and cleared by :meth:`reset`.
    A call to :meth:`process` made while another one is running is dropped.
    """

    def __init__(
        self,
        segmenter: SupportsFloorSam,
        params: AutoFloorParams | None = None,
        *,
        client_factory: Callable[..., httpx.Client] = httpx.Client,
    ) -> None:
        self.segmenter = segmenter
        self.params = params or AutoFloorParams()
        self.client_factory = client_factory
        self.in_flight = False
        self.status = "Ready"
        self.source: SourceImage | None = None
        self.processed: ProcessedImage | None = None
        self.embedding: Embedding = None
        self.result: FloorResult | None = None

    def _set_status(self, msg: str) -> None:
        self.status = msg
        LOG.info(msg)

    @property
    def export_enabled(self) -> bool:
        return self.result is not None

    def _preprocess(self, source: SourceImage) -> ProcessedImage:
        hint = self.params.processor_size
        if hint is None:
            return self.segmenter.preprocess(source)
        try:
            return self.segmenter.preprocess(source, size_hint=hint)
        except (TypeError, ValueError) as e:
            LOG.warning("Processor size option not supported, using default: %s", e)
            return self.segmenter.preprocess(source)

    def process(self, src: ImageSource) -> FloorResult | None:
        """Load `src`, extract its embedding and auto-segment the floor.

        Returns:
            The floor result, or None when another image is still being processed.
        """
        if self.in_flight:
            LOG.debug("Image submitted while another one is in flight; dropped")
            return None
        self.in_flight = True
        try:
            self.result = None
            self._set_status("Extracting image embedding...")
            source = load_image(src, client_factory=self.client_factory)
            processed = self._preprocess(source)
            embedding = self.segmenter.embed(processed)
            self.source, self.processed, self.embedding = source, processed, embedding
            self._set_status("Embedding extracted!")

            self.result = auto_floor_segment(
                self.segmenter,
                processed,
                embedding,
                params=self.params,
                on_status=self._set_status,
            )
            return self.result
        finally:
            self.in_flight = False

    def clear_mask(self) -> None:
        """Drop the current mask; export is disabled until the next segmentation."""
        self.result = None

    def reset(self) -> None:
        """Forget the current image entirely."""
        self.source = None
        self.processed = None
        self.embedding = None
        self.result = None
        self.in_flight = False
        self.status = "Ready"

    def export_cutout(self) -> np.ndarray:
        """Return the RGBA cut-out of the current floor mask.

        Raises:
            RuntimeError: If no mask is available.
        """
        if self.result is None or self.source is None:
            raise RuntimeError("No floor mask to export. Process an image first.")
        return composite_cutout(self.result.rendered, self.source)

    def save_cutout(self, out_path: Path) -> Path:
        """Write the cut-out to `out_path` as a transparent PNG."""
        return save_cutout(self.export_cutout(), out_path)
