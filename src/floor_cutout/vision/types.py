"""Core data types shared across the floor cut-out pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

import numpy as np
from PIL import Image

POSITIVE: Literal[1] = 1
NEGATIVE: Literal[0] = 0

# Opaque output of the image encoder; passed through untouched.
Embedding = Any


@dataclass(frozen=True)
class SourceImage:
    """Decoded RGB image.

    Attributes:
        pixels: ``H×W×3`` uint8 array.
    """

    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 3:
            raise ValueError(f"Expected an HxWx3 RGB buffer, got shape {self.pixels.shape}")

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @classmethod
    def from_pil(cls, img: Image.Image) -> SourceImage:
        """Build a source image from any PIL image (converted to RGB)."""
        return cls(pixels=np.array(img.convert("RGB"), dtype=np.uint8))

    def to_pil(self) -> Image.Image:
        return Image.fromarray(np.asarray(self.pixels))


@dataclass(frozen=True)
class ProcessedImage:
    """Model-ready image produced by the external preprocessor.

    Prompts must be expressed in the reshaped frame (``reshaped_w × reshaped_h``),
    not in the original image frame.

    Attributes:
        original_w, original_h: Size of the source image.
        reshaped_h, reshaped_w: Size of the resized image fed to the encoder.
        inputs: Opaque model inputs (e.g. pixel values tensors).
    """

    original_w: int
    original_h: int
    reshaped_h: int
    reshaped_w: int
    inputs: Any = None


@dataclass(frozen=True)
class PromptPoint:
    """A single prompt point in reshaped pixel units; label 1 = positive, 0 = negative."""

    x: float
    y: float
    label: int


@dataclass(frozen=True)
class PointPrompt:
    """Ordered set of positive/negative prompt points."""

    points: tuple[PromptPoint, ...]

    @property
    def positives(self) -> tuple[PromptPoint, ...]:
        return tuple(p for p in self.points if p.label == POSITIVE)

    @property
    def negatives(self) -> tuple[PromptPoint, ...]:
        return tuple(p for p in self.points if p.label == NEGATIVE)


@dataclass(frozen=True)
class BoxPrompt:
    """Axis-aligned box prompt, corners in reshaped pixel units."""

    x0: float
    y0: float
    x1: float
    y1: float

    def area(self) -> float:
        return max(0.0, self.x1 - self.x0) * max(0.0, self.y1 - self.y0)


Prompt = PointPrompt | BoxPrompt


@dataclass(frozen=True)
class MaskCandidates:
    """Candidate masks from a single inference call.

    Attributes:
        data: ``H×W×M`` array of 0/1 labels, one channel per candidate.
        scores: Model-reported confidence per candidate (length M).
    """

    data: np.ndarray
    scores: tuple[float, ...]

    def __post_init__(self) -> None:
        if self.data.ndim != 3:
            raise ValueError(f"Expected an HxWxM mask buffer, got shape {self.data.shape}")
        if self.data.shape[2] < 1:
            raise ValueError("At least one candidate mask is required")
        if self.data.shape[0] < 1 or self.data.shape[1] < 1:
            raise ValueError(f"Mask buffer has an empty frame: {self.data.shape}")
        if len(self.scores) != self.data.shape[2]:
            raise ValueError(
                f"Got {len(self.scores)} scores for {self.data.shape[2]} candidate masks"
            )

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def count(self) -> int:
        return int(self.data.shape[2])


@dataclass(frozen=True)
class SelectionResult:
    """Chosen candidate and its floor-likeness metrics."""

    index: int
    bottom_ratio: float
    area_ratio: float
    score: float = 0.0


@dataclass(frozen=True)
class RenderedMask:
    """RGBA rendering of a selected mask (alpha is 0 or 255)."""

    rgba: np.ndarray

    @property
    def height(self) -> int:
        return int(self.rgba.shape[0])

    @property
    def width(self) -> int:
        return int(self.rgba.shape[1])
