from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .constants import IOU_THRESHOLD
from .geometry import iou_one_to_many
from .types import Candidate


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = IOU_THRESHOLD
    # None keeps every surviving box.
    max_detections: Optional[int] = None


def nms(boxes: np.ndarray, scores: np.ndarray, cfg: NMSConfig = NMSConfig()) -> np.ndarray:
    """
    Greedy class-agnostic NumPy NMS. Expects boxes shape (N,4) in xyxy and scores shape (N,).
    Returns indices of kept boxes, highest score first.

    Equal scores keep their input order. A box is dropped when its IoU with an
    already kept box is >= `cfg.iou_threshold`.
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.int64)

    boxes = np.asarray(boxes, dtype=np.float64)
    order = np.argsort(-np.asarray(scores, dtype=np.float64), kind="stable")
    keep: List[int] = []

    while order.size > 0:
        if cfg.max_detections is not None and len(keep) >= cfg.max_detections:
            break
        i = order[0]
        keep.append(int(i))

        rest = order[1:]
        ious = iou_one_to_many(boxes[i], boxes[rest])
        order = rest[ious < cfg.iou_threshold]

    return np.array(keep, dtype=np.int64)


def suppress(
    candidates: Sequence[Candidate],
    iou_threshold: float = IOU_THRESHOLD,
    max_detections: Optional[int] = None,
) -> List[Candidate]:
    """
    Run `nms` over decoded candidates and return the survivors by descending confidence,
    at most `max_detections` of them when set.
    """

    if not candidates:
        return []

    boxes = np.array([c.as_xyxy() for c in candidates], dtype=np.float64)
    scores = np.array([c.confidence for c in candidates], dtype=np.float64)
    keep = nms(boxes, scores, NMSConfig(iou_threshold=iou_threshold, max_detections=max_detections))
    return [candidates[i] for i in keep]
