from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .constants import (
    CONFIDENCE_THRESHOLD,
    INPUT_HEIGHT,
    INPUT_WIDTH,
    IOU_THRESHOLD,
    NUM_ANCHORS,
    NUM_CLASSES,
)
from .errors import ShapeMismatchError
from .labels import CLASS_NAMES, label_of
from .nms import suppress
from .types import Candidate, Detection


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PostConfig:
    """
    Post-processing settings for the (4 + C, A) YOLOv8 output layout.
    """

    conf_threshold: float = CONFIDENCE_THRESHOLD
    iou_threshold: float = IOU_THRESHOLD
    num_classes: int = NUM_CLASSES
    num_anchors: int = NUM_ANCHORS
    # Model input (width, height) the raw boxes are expressed in.
    input_size: Tuple[int, int] = (INPUT_WIDTH, INPUT_HEIGHT)
    # Clip corners to [0, W] x [0, H] of the original image.
    clamp_boxes: bool = True
    # Optional cap applied after NMS; None keeps everything.
    max_detections: Optional[int] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.conf_threshold <= 1.0:
            raise ValueError("conf_threshold must be in [0, 1]")
        if not 0.0 < self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in (0, 1]")
        if self.num_classes <= 0 or self.num_anchors <= 0:
            raise ValueError("num_classes and num_anchors must be > 0")
        if self.max_detections is not None and self.max_detections <= 0:
            raise ValueError("max_detections must be > 0 if provided")

    @property
    def num_attributes(self) -> int:
        return 4 + self.num_classes


class YoloPostprocessor:
    """
    Turns the raw YOLOv8 output of one image into labelled detections.

    Layout (per image): (4 + C, A), e.g. 54 x 8400. Attribute `a` of anchor `i`
    lives at flat offset `A * a + i`. Rows 0..3 are cx, cy, w, h in model input
    pixels, the remaining C rows are class scores (no objectness row).

    Pipeline: decode -> confidence filter -> class-agnostic NMS -> label lookup.
    """

    def __init__(self, cfg: PostConfig = PostConfig(), class_names: Sequence[str] = CLASS_NAMES):
        if len(class_names) != cfg.num_classes:
            raise ValueError(f"Expected {cfg.num_classes} class names, got {len(class_names)}")
        self.cfg = cfg
        self.class_names = tuple(class_names)

    def process(self, preds: np.ndarray, orig_size: Tuple[int, int]) -> List[Detection]:
        """
        Convert raw model output into detections in original image coordinates.

        Args:
            preds: model output for a single image, any shape holding (4 + C) * A floats
            orig_size: (width, height) of the original image
        """

        candidates = self.decode_candidates(preds, orig_size)
        kept = suppress(candidates, self.cfg.iou_threshold, self.cfg.max_detections)

        LOGGER.debug("postprocess: %d candidates, %d kept", len(candidates), len(kept))
        return [
            Detection(
                x1=c.x1,
                y1=c.y1,
                x2=c.x2,
                y2=c.y2,
                label=label_of(c.class_id, self.class_names),
                confidence=c.confidence,
            )
            for c in kept
        ]

    def decode_candidates(self, preds: np.ndarray, orig_size: Tuple[int, int]) -> List[Candidate]:
        """
        Decode anchors above the confidence threshold, in anchor order.

        Class id is the first index holding the maximum score. Boxes with a
        negative width or height are dropped, so every candidate has x1 <= x2
        and y1 <= y2.
        """

        rows = self._attribute_rows(preds)
        class_scores = rows[4:, :]
        n = class_scores.shape[1]

        class_ids = np.argmax(class_scores, axis=0)
        scores = class_scores[class_ids, np.arange(n)]

        keep = scores >= self.cfg.conf_threshold
        cx, cy, w_box, h_box = (r.astype(np.float64) for r in rows[0:4, keep])
        valid = (w_box >= 0) & (h_box >= 0)
        if not np.all(valid):
            LOGGER.debug("dropping %d anchors with negative box size", int((~valid).sum()))
        anchors = np.nonzero(keep)[0][valid]
        cx, cy, w_box, h_box = cx[valid], cy[valid], w_box[valid], h_box[valid]

        boxes = self._scale_boxes(
            np.stack([cx - w_box / 2, cy - h_box / 2, cx + w_box / 2, cy + h_box / 2], axis=1),
            orig_size,
        )

        return [
            Candidate(
                x1=float(x1),
                y1=float(y1),
                x2=float(x2),
                y2=float(y2),
                class_id=int(class_ids[i]),
                confidence=float(scores[i]),
            )
            for (x1, y1, x2, y2), i in zip(boxes, anchors)
        ]

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _attribute_rows(self, preds: np.ndarray) -> np.ndarray:
        p = np.asarray(preds)
        expected = (self.cfg.num_attributes, self.cfg.num_anchors)

        if p.size != expected[0] * expected[1]:
            raise ShapeMismatchError("model output size", expected[0] * expected[1], p.size)
        # A flat buffer is accepted as-is; anything shaped must squeeze to (4 + C, A).
        if p.ndim > 1 and np.squeeze(p).shape != expected:
            raise ShapeMismatchError("model output shape", expected, p.shape)

        return p.reshape(expected)

    def _scale_boxes(self, boxes: np.ndarray, orig_size: Tuple[int, int]) -> np.ndarray:
        """
        Map boxes from model input space to the original image.
        """

        orig_w, orig_h = orig_size
        in_w, in_h = self.cfg.input_size
        boxes[:, [0, 2]] *= orig_w / in_w
        boxes[:, [1, 3]] *= orig_h / in_h

        if self.cfg.clamp_boxes:
            boxes[:, [0, 2]] = np.clip(boxes[:, [0, 2]], 0, orig_w)
            boxes[:, [1, 3]] = np.clip(boxes[:, [1, 3]], 0, orig_h)
        return boxes
