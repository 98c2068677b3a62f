"""HuggingFace SAM wrapper: preprocessing, image embeddings and prompted decoding."""

from collections.abc import Callable
from typing import Any

import numpy as np
from transformers import SamModel, SamProcessor

from floor_cutout.vision.types import (
    BoxPrompt,
    Embedding,
    MaskCandidates,
    PointPrompt,
    ProcessedImage,
    Prompt,
    SourceImage,
)

DEFAULT_SAM_MODEL = "facebook/sam-vit-base"

_DTYPE_NAMES: dict[str, str] = {
    "fp32": "float32",
    "fp16": "float16",
    "bf16": "bfloat16",
}


def _to_numpy(x: Any) -> np.ndarray:
    if hasattr(x, "detach"):
        x = x.detach().cpu().numpy()
    return np.asarray(x)


def resolve_device(device: str, torch_module: Any) -> str:
    """Resolve ``"auto"`` and check that an explicit accelerator is usable.

    Raises:
        RuntimeError: If the requested device is not available.
    """
    if device == "auto":
        return "cuda" if torch_module.cuda.is_available() else "cpu"
    if device.startswith("cuda") and not torch_module.cuda.is_available():
        raise RuntimeError(f"Device {device!r} requested but CUDA is not available.")
    if device == "mps":
        mps = getattr(getattr(torch_module, "backends", None), "mps", None)
        if mps is None or not mps.is_available():
            raise RuntimeError("Device 'mps' requested but MPS is not available.")
    return device


class SamHF:
    """Thin wrapper around HF ``SamModel`` exposing the three calls the floor pipeline needs."""

    def __init__(
        self,
        model_id: str = DEFAULT_SAM_MODEL,
        device: str = "auto",
        precision: str = "fp32",
        *,
        torch_module: Any | None = None,
        processor: Any | None = None,
        model: Any | None = None,
        processor_factory: Callable[[str], Any] = SamProcessor.from_pretrained,
        model_factory: Callable[[str], Any] = SamModel.from_pretrained,
    ) -> None:
        """Initialize the segmenter.

        Args:
            model_id: HuggingFace model id.
            device: "auto", "cpu", "cuda" or "mps".
            precision: "fp32", "fp16" or "bf16".
            torch_module: Optional torch-like module for dependency injection.
            processor: Optional pre-built processor.
            model: Optional pre-built model.
            processor_factory: Factory to build the processor from `model_id`.
            model_factory: Factory to build the model from `model_id`.

        Raises:
            RuntimeError: If the device is unavailable or the precision is not
                supported on it.
            ValueError: If `precision` is unknown.
        """
        if torch_module is None:
            import torch as torch_module  # local import to keep module import lightweight

        if precision not in _DTYPE_NAMES:
            raise ValueError(
                f"Unknown precision {precision!r}; expected one of {list(_DTYPE_NAMES)}"
            )

        device = resolve_device(device, torch_module)
        if device == "cpu" and precision == "fp16":
            raise RuntimeError("fp16 inference is not supported on cpu.")

        self.torch = torch_module
        self.device = device
        self.precision = precision
        self.dtype = getattr(torch_module, _DTYPE_NAMES[precision])
        self.processor: Any = processor if processor is not None else processor_factory(model_id)
        self.model = model if model is not None else model_factory(model_id)
        self.model.to(device=device, dtype=self.dtype)
        self.model.eval()

    def preprocess(self, source: SourceImage, size_hint: int | None = None) -> ProcessedImage:
        """Resize/normalize `source` for the encoder.

        `size_hint` is forwarded as the longest-edge target; processors that do
        not accept it raise, and the caller retries without it.
        """
        kwargs: dict[str, Any] = {}
        if size_hint is not None:
            kwargs["size"] = {"longest_edge": int(size_hint)}
        inputs = self.processor(images=source.to_pil(), return_tensors="pt", **kwargs)

        orig_h, orig_w = (int(v) for v in _to_numpy(inputs["original_sizes"])[0])
        res_h, res_w = (int(v) for v in _to_numpy(inputs["reshaped_input_sizes"])[0])
        return ProcessedImage(
            original_w=orig_w,
            original_h=orig_h,
            reshaped_h=res_h,
            reshaped_w=res_w,
            inputs=inputs,
        )

    def embed(self, processed: ProcessedImage) -> Embedding:
        """Run the image encoder once; the result is reused for every decode."""
        pixel_values = processed.inputs["pixel_values"].to(self.device, dtype=self.dtype)
        with self.torch.inference_mode():
            return self.model.get_image_embeddings(pixel_values)

    def _prompt_kwargs(self, prompt: Prompt) -> dict[str, Any]:
        t = self.torch
        if isinstance(prompt, PointPrompt):
            coords = [[[[p.x, p.y] for p in prompt.points]]]  # (1, 1, N, 2)
            labels = [[[int(p.label) for p in prompt.points]]]  # (1, 1, N)
            return {
                "input_points": t.tensor(coords, dtype=self.dtype, device=self.device),
                "input_labels": t.tensor(labels, dtype=t.int64, device=self.device),
            }
        if isinstance(prompt, BoxPrompt):
            box = [[[prompt.x0, prompt.y0, prompt.x1, prompt.y1]]]  # (1, 1, 4)
            return {"input_boxes": t.tensor(box, dtype=self.dtype, device=self.device)}
        raise TypeError(f"Unsupported prompt type: {type(prompt).__name__}")

    def infer(
        self, embedding: Embedding, prompt: Prompt, processed: ProcessedImage
    ) -> MaskCandidates:
        """Decode candidate masks for `prompt`, resized back to the original image frame.

        Returns:
            Candidates with data of shape ``(original_h, original_w, M)``.
        """
        with self.torch.inference_mode():
            outputs = self.model(
                image_embeddings=embedding,
                multimask_output=True,
                **self._prompt_kwargs(prompt),
            )

        masks = self.processor.image_processor.post_process_masks(
            outputs.pred_masks.float().cpu(),
            processed.inputs["original_sizes"],
            processed.inputs["reshaped_input_sizes"],
        )
        # masks[0]: (point_batch=1, M, H, W) booleans
        arr = _to_numpy(masks[0])[0]
        data = np.transpose(arr, (1, 2, 0)).astype(np.uint8)
        scores = _to_numpy(outputs.iou_scores.float()).reshape(-1)
        return MaskCandidates(data=data, scores=tuple(float(s) for s in scores))


def acquire_sam(
    device: str,
    precision: str,
    *,
    model_id: str = DEFAULT_SAM_MODEL,
    **kwargs: Any,
) -> SamHF:
    """Load SAM on `device` at `precision`; raises when the combination is unavailable."""
    return SamHF(model_id=model_id, device=device, precision=precision, **kwargs)
