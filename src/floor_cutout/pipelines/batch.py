"""Single-image and batch runners writing cut-outs, masks and summaries to disk."""

import json
import logging
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from floor_cutout.pipelines.auto_floor import FloorResult, FloorSession
from floor_cutout.vision.compose import save_cutout
from floor_cutout.vision.image import ensure_dir
from floor_cutout.vision.types import BoxPrompt, PointPrompt, Prompt
from floor_cutout.vision.vis import save_mask, save_overlay

LOG = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class AutoFloorRun:
    """Run configuration for a single image."""

    image_path: Path
    outdir: Path
    overwrite: bool = False
    save_debug: bool = True
    verbose: bool = False


def _prompt_payload(prompt: Prompt) -> dict[str, Any]:
    if isinstance(prompt, PointPrompt):
        return {
            "kind": "points",
            "points": [
                {"x": float(p.x), "y": float(p.y), "label": int(p.label)} for p in prompt.points
            ],
        }
    if isinstance(prompt, BoxPrompt):
        return {
            "kind": "box",
            "box": [float(prompt.x0), float(prompt.y0), float(prompt.x1), float(prompt.y1)],
        }
    raise TypeError(f"Unsupported prompt type: {type(prompt).__name__}")


def result_payload(image_path: Path, res: FloorResult) -> dict[str, Any]:
    """JSON-friendly description of a floor result."""
    return {
        "image": str(image_path),
        "image_w": res.candidates.width,
        "image_h": res.candidates.height,
        "selected_index": int(res.selection.index),
        "score": float(res.selection.score),
        "bottom_ratio": float(res.selection.bottom_ratio),
        "area_ratio": float(res.selection.area_ratio),
        "retried": res.retried,
        "passes": [
            {
                "pass": p.pass_index,
                "selected_index": int(p.selection.index),
                "score": float(p.selection.score),
                "bottom_ratio": float(p.selection.bottom_ratio),
                "area_ratio": float(p.selection.area_ratio),
                "prompt": _prompt_payload(p.prompt),
            }
            for p in res.passes
        ],
    }


def run_auto_floor(cfg: AutoFloorRun, *, session: FloorSession) -> dict[str, Any]:
    """Run automatic floor segmentation on one image and write outputs.

    Outputs (under `cfg.outdir`):
      - `<image_stem>.cutout.png`: transparent cut-out of the floor
      - `<image_stem>.mask.png`: 8-bit binary mask
      - `<image_stem>.overlay.jpg`: mask and final prompt over the photo (`save_debug`)
      - `final.json`: selection metrics for every pass

    Returns:
        The dict that is written to `final.json`.

    Raises:
        RuntimeError: If the session is busy with another image.
    """
    if cfg.verbose:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")

    ensure_dir(cfg.outdir)
    final_json = cfg.outdir / "final.json"
    if final_json.exists() and not cfg.overwrite:
        cached = json.loads(final_json.read_text(encoding="utf-8"))
        if cached.get("image") == str(cfg.image_path):
            return cached
        LOG.warning(
            "Existing %s belongs to image=%s, reprocessing %s",
            final_json,
            cached.get("image"),
            cfg.image_path,
        )

    res = session.process(cfg.image_path)
    if res is None:
        raise RuntimeError(f"Session busy; {cfg.image_path} was not processed")

    stem = cfg.image_path.stem
    save_cutout(session.export_cutout(), cfg.outdir / f"{stem}.cutout.png")
    save_mask(res.rendered, cfg.outdir / f"{stem}.mask.png")
    if cfg.save_debug and session.source is not None and session.processed is not None:
        processed = session.processed
        save_overlay(
            session.source,
            res.rendered,
            cfg.outdir / f"{stem}.overlay.jpg",
            prompt=res.prompt,
            scale=(
                processed.original_w / processed.reshaped_w,
                processed.original_h / processed.reshaped_h,
            ),
        )

    payload = result_payload(cfg.image_path, res)
    final_json.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return payload


def batch_outdirs(images: list[Path], out_root: Path) -> list[Path]:
    """One output directory per image, named by stem.

    Images sharing a stem (`room.jpg`, `room.png`) get the extension appended
    so their outputs never collide.
    """
    stems = Counter(p.stem for p in images)
    out: list[Path] = []
    for p in images:
        name = p.stem
        if stems[p.stem] > 1:
            name = f"{p.stem}_{p.suffix.lstrip('.')}"
        out.append(out_root / name)
    if len(set(out)) != len(out):
        raise ValueError(f"Duplicate images in batch: {[str(p) for p in images]}")
    return out


def run_auto_floor_batch(
    *,
    images: list[Path],
    out_root: Path,
    session: FloorSession,
    overwrite: bool = False,
    save_debug: bool = True,
    verbose: bool = False,
) -> tuple[list[dict[str, object]], int]:
    """Run automatic floor segmentation over `images` and write `summary.yaml` in `out_root`.

    Returns:
        (summary_images, failures)
    """
    ensure_dir(out_root)
    summary: list[dict[str, object]] = []
    failures = 0

    for image_path, per_outdir in zip(images, batch_outdirs(images, out_root)):
        try:
            payload = run_auto_floor(
                AutoFloorRun(
                    image_path=image_path,
                    outdir=per_outdir,
                    overwrite=overwrite,
                    save_debug=save_debug,
                    verbose=verbose,
                ),
                session=session,
            )
            summary.append(
                {
                    "image": str(image_path),
                    "outdir": str(per_outdir),
                    "selected_index": payload.get("selected_index"),
                    "bottom_ratio": payload.get("bottom_ratio"),
                    "area_ratio": payload.get("area_ratio"),
                    "retried": payload.get("retried"),
                }
            )
        except Exception as e:
            failures += 1
            LOG.exception("Auto floor failed for image=%s", image_path)
            summary.append(
                {
                    "image": str(image_path),
                    "outdir": str(per_outdir),
                    "error": f"{type(e).__name__}: {e}",
                }
            )

    dumped = yaml.safe_dump({"images": summary}, sort_keys=False)
    (out_root / "summary.yaml").write_text(dumped, encoding="utf-8")
    return summary, failures
