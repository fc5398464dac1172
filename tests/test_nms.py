import unittest

import numpy as np

from partscan_kit.geometry import iou
from partscan_kit.nms import NMSConfig, nms, suppress
from partscan_kit.types import Candidate


def _cand(x1, y1, x2, y2, conf, class_id=0) -> Candidate:
    return Candidate(x1=x1, y1=y1, x2=x2, y2=y2, class_id=class_id, confidence=conf)


class TestSuppress(unittest.TestCase):
    def test_identical_boxes_keep_highest(self) -> None:
        low = _cand(270, 295, 370, 345, 0.6, class_id=7)
        high = _cand(270, 295, 370, 345, 0.9, class_id=7)
        kept = suppress([low, high])
        self.assertEqual(kept, [high])

    def test_max_detections_counts_survivors(self) -> None:
        a = _cand(0, 0, 10, 10, 0.9)
        a_dup = _cand(0, 0, 10, 10, 0.8)
        b = _cand(50, 50, 60, 60, 0.7)
        c = _cand(100, 100, 110, 110, 0.6)
        self.assertEqual(suppress([c, a_dup, b, a], max_detections=2), [a, b])
        self.assertEqual(suppress([c, a_dup, b, a]), [a, b, c])

    def test_disjoint_ties_keep_input_order(self) -> None:
        top_left = _cand(0, 0, 50, 50, 0.8)
        bottom_right = _cand(590, 590, 640, 640, 0.8)
        self.assertEqual(suppress([top_left, bottom_right]), [top_left, bottom_right])
        self.assertEqual(suppress([bottom_right, top_left]), [bottom_right, top_left])

    def test_class_agnostic(self) -> None:
        a = _cand(0, 0, 100, 100, 0.9, class_id=1)
        b = _cand(0, 0, 100, 100, 0.8, class_id=2)
        self.assertEqual(suppress([a, b]), [a])

    def test_threshold_is_exclusive(self) -> None:
        a = _cand(0, 0, 10, 10, 0.9)
        b = _cand(0, 0, 10, 7, 0.8)  # iou exactly 0.7
        self.assertEqual(iou(a, b), 0.7)
        self.assertEqual(suppress([a, b], iou_threshold=0.7), [a])
        self.assertEqual(suppress([a, b], iou_threshold=0.71), [a, b])

    def test_empty(self) -> None:
        self.assertEqual(suppress([]), [])

    def test_degenerate_boxes_terminate(self) -> None:
        boxes = [_cand(5, 5, 5, 5, 0.9), _cand(5, 5, 5, 5, 0.8)]
        self.assertEqual(suppress(boxes), boxes)

    def test_properties_on_random_boxes(self) -> None:
        rng = np.random.default_rng(7)
        xy = rng.uniform(0, 560, size=(300, 2))
        wh = rng.uniform(5, 120, size=(300, 2))
        scores = np.round(rng.uniform(0.5, 1.0, size=300), 2)
        cands = [_cand(*xy[i], *(xy[i] + wh[i]), float(scores[i])) for i in range(300)]

        kept = suppress(cands, iou_threshold=0.7)
        self.assertGreater(len(kept), 0)

        confs = [c.confidence for c in kept]
        self.assertEqual(confs, sorted(confs, reverse=True))
        for i in range(len(kept)):
            for j in range(i + 1, len(kept)):
                self.assertLess(iou(kept[i], kept[j]), 0.7)

        # Every dropped box overlaps a kept box at least as confident.
        kept_ids = {id(c) for c in kept}
        for c in cands:
            if id(c) in kept_ids:
                continue
            self.assertTrue(any(k.confidence >= c.confidence and iou(k, c) >= 0.7 for k in kept))

        self.assertEqual(suppress(cands, iou_threshold=0.7), kept)


class TestNmsArrays(unittest.TestCase):
    def test_returns_indices_by_score(self) -> None:
        boxes = np.array(
            [
                [0, 0, 10, 10],
                [0, 0, 10, 10],
                [100, 100, 120, 120],
            ],
            dtype=np.float32,
        )
        scores = np.array([0.6, 0.9, 0.7], dtype=np.float32)
        keep = nms(boxes, scores, NMSConfig(iou_threshold=0.7))
        self.assertTrue(np.array_equal(keep, np.array([1, 2])))

    def test_max_detections(self) -> None:
        boxes = np.array([[0, 0, 1, 1], [5, 5, 6, 6], [9, 9, 10, 10]], dtype=np.float32)
        scores = np.array([0.5, 0.9, 0.7], dtype=np.float32)
        keep = nms(boxes, scores, NMSConfig(iou_threshold=0.7, max_detections=2))
        self.assertTrue(np.array_equal(keep, np.array([1, 2])))

    def test_empty(self) -> None:
        keep = nms(np.zeros((0, 4), dtype=np.float32), np.zeros((0,), dtype=np.float32))
        self.assertEqual(keep.shape, (0,))


if __name__ == "__main__":
    unittest.main()
