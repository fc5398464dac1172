from __future__ import annotations

from typing import Sequence, Tuple, Union

import numpy as np

from .types import Candidate, Detection


BoxLike = Union[Candidate, Detection, Sequence[float]]


def _xyxy(box: BoxLike) -> Tuple[float, float, float, float]:
    if hasattr(box, "as_xyxy"):
        return box.as_xyxy()
    x1, y1, x2, y2 = box[:4]
    return float(x1), float(y1), float(x2), float(y2)


def area(box: BoxLike) -> float:
    # Not clamped: inverted corners give a negative area.
    x1, y1, x2, y2 = _xyxy(box)
    return (x2 - x1) * (y2 - y1)


def intersection(a: BoxLike, b: BoxLike) -> float:
    ax1, ay1, ax2, ay2 = _xyxy(a)
    bx1, by1, bx2, by2 = _xyxy(b)
    ix1 = max(ax1, bx1)
    iy1 = max(ay1, by1)
    ix2 = min(ax2, bx2)
    iy2 = min(ay2, by2)
    if ix2 < ix1 or iy2 < iy1:
        return 0.0
    return (ix2 - ix1) * (iy2 - iy1)


def union(a: BoxLike, b: BoxLike) -> float:
    return area(a) + area(b) - intersection(a, b)


def iou(a: BoxLike, b: BoxLike) -> float:
    """
    Intersection-over-union of two xyxy boxes.

    Returns 0.0 when the union is not positive (both boxes degenerate).
    """

    u = union(a, b)
    if u <= 0.0:
        return 0.0
    return intersection(a, b) / u


def iou_one_to_many(box: np.ndarray, boxes: np.ndarray) -> np.ndarray:
    """
    Vectorised `iou` of one box (4,) against many boxes (N, 4), all xyxy.
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.float64)

    xx1 = np.maximum(box[0], boxes[:, 0])
    yy1 = np.maximum(box[1], boxes[:, 1])
    xx2 = np.minimum(box[2], boxes[:, 2])
    yy2 = np.minimum(box[3], boxes[:, 3])

    w = xx2 - xx1
    h = yy2 - yy1
    inter = np.where((w < 0) | (h < 0), 0.0, w * h)

    box_area = (box[2] - box[0]) * (box[3] - box[1])
    areas = (boxes[:, 2] - boxes[:, 0]) * (boxes[:, 3] - boxes[:, 1])
    uni = box_area + areas - inter

    out = np.zeros(uni.shape, dtype=np.float64)
    np.divide(inter, uni, out=out, where=uni > 0)
    return out
