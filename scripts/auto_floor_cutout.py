#!/usr/bin/env python3
"""Batch runner: automatic floor segmentation → transparent cut-out PNGs.

Core logic lives in `floor_cutout.pipelines`. This script only wires the model
backend, parameters and input discovery.
"""

import argparse
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path

from floor_cutout.detectors.sam_hf import DEFAULT_SAM_MODEL, acquire_sam
from floor_cutout.pipelines.auto_floor import AutoFloorParams, FloorSession
from floor_cutout.pipelines.backends import (
    DEFAULT_BACKENDS,
    acquire_with_fallback,
    parse_backends,
)
from floor_cutout.pipelines.batch import run_auto_floor_batch
from floor_cutout.pipelines.config import load_params_yaml, params_with_env

_IMAGE_EXTS = {".jpg", ".jpeg", ".png", ".webp"}


def _iter_images(images_dir: Path) -> list[Path]:
    return sorted(
        p for p in images_dir.iterdir() if p.is_file() and p.suffix.lower() in _IMAGE_EXTS
    )


def main(argv: list[str]) -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--images_dir", type=str, default="assets/images")
    ap.add_argument("--out_root", type=str, default="outputs/auto_floor")
    ap.add_argument("--params", type=str, default="", help="Optional YAML parameter file")
    ap.add_argument("--keep_better_pass", action="store_true")
    ap.add_argument("--no_debug", action="store_true")
    ap.add_argument("--overwrite", action="store_true")
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")

    images_dir = Path(args.images_dir).expanduser().resolve()
    if not images_dir.is_dir():
        raise SystemExit(f"--images_dir is not a directory: {images_dir}")

    images = _iter_images(images_dir)
    if not images:
        raise SystemExit(f"No images found under: {images_dir}")

    params = load_params_yaml(Path(args.params)) if args.params else AutoFloorParams()
    params = params_with_env(params, os.environ)
    if args.keep_better_pass:
        params = replace(params, keep_better_pass=True)

    model_id = os.environ.get("SAM_MODEL", DEFAULT_SAM_MODEL)
    backends_env = os.environ.get("SAM_BACKENDS", "")
    backends = parse_backends(backends_env) if backends_env else DEFAULT_BACKENDS
    backend = acquire_with_fallback(
        backends,
        lambda cfg: acquire_sam(cfg.device, cfg.precision, model_id=model_id),
    )

    session = FloorSession(backend.handle, params)
    _, failures = run_auto_floor_batch(
        images=images,
        out_root=Path(args.out_root).expanduser().resolve(),
        session=session,
        overwrite=bool(args.overwrite),
        save_debug=not args.no_debug,
        verbose=bool(args.verbose),
    )
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
