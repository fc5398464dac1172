from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np
import onnxruntime as ort

from ..errors import InferenceError


PathLike = Union[str, Path]

LOGGER = logging.getLogger(__name__)

COREML_PROVIDER = "CoreMLExecutionProvider"
CPU_PROVIDER = "CPUExecutionProvider"


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - input_name/output_name: override auto-selected I/O names if needed
    - use_coreml: put the CoreML provider first (Apple silicon)
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_name: Optional[str] = None
    use_coreml: bool = False

    def resolved_providers(self) -> Optional[Sequence[str]]:
        providers = list(self.providers) if self.providers is not None else None
        if self.use_coreml:
            rest = [p for p in (providers or [CPU_PROVIDER]) if p != COREML_PROVIDER]
            providers = [COREML_PROVIDER, *rest]
        return providers


class OnnxRuntimeBackend:
    """
    Minimal ONNX Runtime backend.

    Expects an NCHW float32 blob shaped (1, 3, H, W).
    Returns the primary output as a NumPy array.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        sess_opts = ort.SessionOptions()
        try:
            self.session = ort.InferenceSession(
                str(self.model_path), sess_options=sess_opts, providers=cfg.resolved_providers()
            )
        except Exception as exc:
            raise InferenceError(f"Could not create ONNX Runtime session for {self.model_path}: {exc}") from exc

        self.input_name = cfg.input_name or self.session.get_inputs()[0].name
        # If output_name not provided, pick first output.
        self.output_name = cfg.output_name or self.session.get_outputs()[0].name
        LOGGER.info(
            "loaded %s (input=%s output=%s providers=%s)",
            self.model_path.name,
            self.input_name,
            self.output_name,
            ",".join(self.providers_in_use),
        )

    @property
    def providers_in_use(self) -> Sequence[str]:
        # ORT returns providers in priority order for this session.
        return tuple(self.session.get_providers())

    def infer(self, blob: np.ndarray) -> np.ndarray:
        try:
            outputs = self.session.run([self.output_name], {self.input_name: blob})
        except Exception as exc:
            raise InferenceError(f"ONNX Runtime inference failed: {exc}") from exc
        return outputs[0]
