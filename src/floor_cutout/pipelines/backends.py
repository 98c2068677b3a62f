"""Ordered (device, precision) fallback for acquiring a model handle."""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

LOG = logging.getLogger(__name__)

H = TypeVar("H")


@dataclass(frozen=True, slots=True)
class BackendConfig:
    """A device/precision combination to try."""

    device: str
    precision: str

    def __str__(self) -> str:
        return f"{self.device}:{self.precision}"


@dataclass(frozen=True)
class AcquiredBackend(Generic[H]):
    """The handle obtained from the first configuration that worked."""

    handle: H
    device: str
    precision: str


# Fastest first; the last entry is the one expected to work everywhere.
DEFAULT_BACKENDS: tuple[BackendConfig, ...] = (
    BackendConfig("cuda", "fp16"),
    BackendConfig("cuda", "fp32"),
    BackendConfig("cpu", "fp32"),
)


def parse_backends(value: str) -> tuple[BackendConfig, ...]:
    """Parse ``"cuda:fp16,cpu:fp32"`` into backend configs.

    A bare device (``"cpu"``) defaults to fp32.
    """
    out: list[BackendConfig] = []
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        device, _, precision = item.partition(":")
        out.append(BackendConfig(device.strip(), precision.strip() or "fp32"))
    if not out:
        raise ValueError(f"No backend configurations in {value!r}")
    return tuple(out)


def acquire_with_fallback(
    configs: Sequence[BackendConfig],
    acquire: Callable[[BackendConfig], H],
) -> AcquiredBackend[H]:
    """Try `configs` in order and return the first handle that loads.

    Every configuration but the last is attempted under a guard: a failure is
    logged as a warning and the next one is tried. The last configuration is
    attempted unguarded, so its exception propagates to the caller.

    Raises:
        ValueError: If `configs` is empty.
    """
    if not configs:
        raise ValueError("At least one backend configuration is required")

    *guarded, last = configs
    for cfg in guarded:
        try:
            handle = acquire(cfg)
        except Exception as e:
            LOG.warning("Backend %s unavailable, falling back: %s: %s", cfg, type(e).__name__, e)
            continue
        LOG.info("Model loaded (%s)", cfg)
        return AcquiredBackend(handle=handle, device=cfg.device, precision=cfg.precision)

    handle = acquire(last)
    LOG.info("Model loaded (%s)", last)
    return AcquiredBackend(handle=handle, device=last.device, precision=last.precision)
