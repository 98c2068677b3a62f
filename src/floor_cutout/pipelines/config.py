"""YAML parameter files and environment overrides for the floor pipeline."""

from collections.abc import Mapping
from dataclasses import asdict
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from floor_cutout.pipelines.auto_floor import AutoFloorParams
from floor_cutout.vision.prompts import FloorPromptParams


def _fraction(v: float) -> float:
    if not 0.0 <= v <= 1.0:
        raise ValueError(f"expected a fraction in [0, 1], got {v}")
    return v


class _PromptYaml(BaseModel):
    model_config = ConfigDict(extra="ignore")

    mode: Literal["points", "box"] = "points"
    floor_start_y: float = 0.62
    floor_strong_y: float = 0.72
    mid_block_y: float = 0.55
    use_mid_band: bool = True
    box_start_y: float = 0.45
    box_strong_start_y: float = 0.55

    @field_validator(
        "floor_start_y",
        "floor_strong_y",
        "mid_block_y",
        "box_start_y",
        "box_strong_start_y",
    )
    @classmethod
    def _check_fraction(cls, v: float) -> float:
        return _fraction(v)


class _ParamsYaml(BaseModel):
    model_config = ConfigDict(extra="ignore")

    prompt: _PromptYaml = Field(default_factory=_PromptYaml)
    min_bottom_coverage: float = 0.08
    min_area_ratio: float = 0.08
    processor_size: int | None = 640
    keep_better_pass: bool = False
    highlight_rgb: tuple[int, int, int] = (0, 114, 189)

    @field_validator("min_bottom_coverage", "min_area_ratio")
    @classmethod
    def _check_fraction(cls, v: float) -> float:
        return _fraction(v)

    @field_validator("processor_size", mode="before")
    @classmethod
    def _coerce_processor_size(cls, v: Any) -> Any:
        # 0 / empty mean "use the model default"
        if isinstance(v, str):
            v = v.strip()
        if v in (0, "", "0", None):
            return None
        return v


def params_from_dict(data: dict[str, Any]) -> AutoFloorParams:
    """Validate a plain mapping into :class:`AutoFloorParams`.

    Raises:
        pydantic.ValidationError: If a value is out of range or of the wrong type.
    """
    parsed = _ParamsYaml.model_validate(data)
    return AutoFloorParams(
        prompt=FloorPromptParams(**parsed.prompt.model_dump()),
        min_bottom_coverage=parsed.min_bottom_coverage,
        min_area_ratio=parsed.min_area_ratio,
        processor_size=parsed.processor_size,
        keep_better_pass=parsed.keep_better_pass,
        highlight_rgb=parsed.highlight_rgb,
    )


def load_params_yaml(path: Path) -> AutoFloorParams:
    """Load :class:`AutoFloorParams` from a YAML file (missing keys keep defaults)."""
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping at the top of {path}, got {type(data).__name__}")
    return params_from_dict(data)


_ENV_PROMPT_KEYS = {
    "PROMPT_MODE": "mode",
    "FLOOR_START_Y": "floor_start_y",
    "FLOOR_STRONG_Y": "floor_strong_y",
    "MID_BLOCK_Y": "mid_block_y",
    "BOX_START_Y": "box_start_y",
    "BOX_STRONG_START_Y": "box_strong_start_y",
}
_ENV_PARAM_KEYS = {
    "MIN_BOTTOM_COVERAGE": "min_bottom_coverage",
    "MIN_AREA_RATIO": "min_area_ratio",
    "PROCESSOR_SIZE": "processor_size",
}


def params_with_env(params: AutoFloorParams, environ: Mapping[str, str]) -> AutoFloorParams:
    """Apply environment overrides (`FLOOR_START_Y`, `PROMPT_MODE`, ...) to `params`.

    Merged values go through the same validation as YAML files.

    Raises:
        pydantic.ValidationError: If an override is out of range or malformed.
    """
    data = asdict(params)
    for env_key, field in _ENV_PROMPT_KEYS.items():
        if env_key in environ:
            data["prompt"][field] = environ[env_key]
    for env_key, field in _ENV_PARAM_KEYS.items():
        if env_key in environ:
            data[field] = environ[env_key]
    return params_from_dict(data)
