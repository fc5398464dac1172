from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

import numpy as np

from .labels import CLASS_NAMES
from .postprocess import PostConfig, YoloPostprocessor
from .preprocess import PreparedInput, decode_image, prepare_input
from .session import ModelSession
from .types import Detection


PathLike = Union[str, Path]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", ".git"),
) -> Path:
    """
    Best-effort project root discovery, so `Models/best.onnx` resolves the same
    way from scripts, tests and the service.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    # If a file is provided, start from its directory.
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path.

    - Absolute paths are returned as-is.
    - Relative paths are resolved against:
      - `root` if provided
      - project root (auto) otherwise
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


class DetectionPipeline:
    """
    Plug-and-play pipeline: preprocess (stretch resize) -> inference -> postprocess.

    Expects BGR images (OpenCV-style) as `np.ndarray` and returns a list of
    `Detection` in original image coordinates, highest confidence first.
    """

    def __init__(
        self,
        infer_fn: Callable[[np.ndarray], np.ndarray],
        *,
        session: Optional[ModelSession] = None,
        post_cfg: PostConfig = PostConfig(),
        class_names: Sequence[str] = CLASS_NAMES,
    ):
        self._infer_fn = infer_fn
        self.session = session
        # Boxes are scaled back from the size the image is resized to.
        self.input_size = post_cfg.input_size
        self.post = YoloPostprocessor(post_cfg, class_names)

    def preprocess(self, image_bgr: np.ndarray) -> PreparedInput:
        return prepare_input(image_bgr, self.input_size)

    def __call__(self, image_bgr: np.ndarray) -> List[Detection]:
        prep = self.preprocess(image_bgr)
        preds = self._infer_fn(prep.tensor)
        return self.post.process(preds, orig_size=prep.orig_size)

    def detect_bytes(self, data: bytes) -> List[Detection]:
        return self(decode_image(data))


def load_pipeline(
    model_path: PathLike,
    *,
    root: Optional[PathLike] = "auto",
    post_cfg: PostConfig = PostConfig(),
    class_names: Sequence[str] = CLASS_NAMES,
    onnx_providers: Optional[Sequence[str]] = None,
    use_coreml: bool = False,
    onnx_input_name: Optional[str] = None,
    onnx_output_name: Optional[str] = None,
    eager: bool = False,
) -> DetectionPipeline:
    """
    Create a pipeline backed by an ONNX model on disk.

        pipe = load_pipeline("Models/best.onnx")  # resolves from project root by default

    The ONNX Runtime session is created on first use unless `eager` is set.

    Args:
        model_path: path to the .onnx file; relative paths resolve against project root by default
        root: base directory for resolving relative model paths ("auto" uses best-effort project root)
        onnx_providers: ORT execution providers in priority order; None lets ORT choose
    """

    from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

    resolved = resolve_path(model_path, root=root)
    if resolved.suffix.lower() != ".onnx":
        raise ValueError(f"Expected an .onnx model, got '{resolved.suffix}'")

    backend_cfg = OnnxRuntimeBackendConfig(
        providers=onnx_providers,
        input_name=onnx_input_name,
        output_name=onnx_output_name,
        use_coreml=use_coreml,
    )
    in_w, in_h = post_cfg.input_size
    session = ModelSession(
        lambda: OnnxRuntimeBackend(resolved, backend_cfg),
        input_shape=(1, 3, in_h, in_w),
    )
    if eager:
        session.ensure_loaded()

    return DetectionPipeline(
        session.infer,
        session=session,
        post_cfg=post_cfg,
        class_names=class_names,
    )
