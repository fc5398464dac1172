"""
Pre/post-processing and inference helpers for the partscan YOLOv8 parts detector.

Works on NumPy arrays: OpenCV for decoding and resizing, ONNX Runtime (optional
import, see `partscan_kit.backends`) for inference.
"""

from .errors import DecodeError, DetectionError, InferenceError, ShapeMismatchError
from .types import Candidate, Detection
from .geometry import area, intersection, iou, union
from .labels import CLASS_NAMES, label_of, load_class_names
from .nms import NMSConfig, nms, suppress
from .preprocess import PreparedInput, decode_image, prepare_input
from .postprocess import PostConfig, YoloPostprocessor
from .session import ModelSession
from .runtime import DetectionPipeline, load_pipeline, find_project_root, resolve_path
from .visualize import draw_detections

__all__ = [
    "DecodeError",
    "DetectionError",
    "InferenceError",
    "ShapeMismatchError",
    "Candidate",
    "Detection",
    "area",
    "intersection",
    "iou",
    "union",
    "CLASS_NAMES",
    "label_of",
    "load_class_names",
    "NMSConfig",
    "nms",
    "suppress",
    "PreparedInput",
    "decode_image",
    "prepare_input",
    "PostConfig",
    "YoloPostprocessor",
    "ModelSession",
    "DetectionPipeline",
    "load_pipeline",
    "find_project_root",
    "resolve_path",
    "draw_detections",
]
