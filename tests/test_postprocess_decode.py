import unittest

import numpy as np

from output_builders import make_output
from partscan_kit.errors import ShapeMismatchError
from partscan_kit.geometry import iou
from partscan_kit.labels import CLASS_NAMES
from partscan_kit.postprocess import PostConfig, YoloPostprocessor


class TestYoloPostprocessDecode(unittest.TestCase):
    def test_single_anchor(self) -> None:
        preds = make_output([(0, 320, 320, 100, 50, 7, 0.9)])
        post = YoloPostprocessor(PostConfig())
        dets = post.process(preds, orig_size=(640, 640))

        self.assertEqual(len(dets), 1)
        det = dets[0]
        self.assertEqual(det.as_xyxy(), (270.0, 295.0, 370.0, 345.0))
        self.assertEqual(det.label, CLASS_NAMES[7])
        self.assertAlmostEqual(det.confidence, 0.9, places=6)

    def test_duplicate_anchor_suppressed(self) -> None:
        preds = make_output(
            [
                (10, 320, 320, 100, 50, 3, 0.6),
                (20, 320, 320, 100, 50, 3, 0.9),
            ]
        )
        dets = YoloPostprocessor().process(preds, orig_size=(640, 640))
        self.assertEqual(len(dets), 1)
        self.assertAlmostEqual(dets[0].confidence, 0.9, places=6)

    def test_disjoint_ties_keep_scan_order(self) -> None:
        preds = make_output(
            [
                (5, 40, 40, 60, 60, 1, 0.8),
                (9, 600, 600, 60, 60, 2, 0.8),
            ]
        )
        dets = YoloPostprocessor().process(preds, orig_size=(640, 640))
        self.assertEqual([d.label for d in dets], [CLASS_NAMES[1], CLASS_NAMES[2]])
        self.assertEqual(dets[0].as_xyxy(), (10.0, 10.0, 70.0, 70.0))
        self.assertEqual(dets[1].as_xyxy(), (570.0, 570.0, 630.0, 630.0))

    def test_all_below_threshold_is_empty(self) -> None:
        preds = make_output([(i, 100, 100, 20, 20, i % 50, 0.49) for i in range(100)], background=0.1)
        post = YoloPostprocessor()
        self.assertEqual(post.decode_candidates(preds, (640, 640)), [])
        self.assertEqual(post.process(preds, (640, 640)), [])

    def test_threshold_is_inclusive(self) -> None:
        preds = make_output([(0, 100, 100, 20, 20, 0, 0.5)])
        self.assertEqual(len(YoloPostprocessor().decode_candidates(preds, (640, 640))), 1)

    def test_first_max_class_wins(self) -> None:
        preds = make_output([(0, 100, 100, 20, 20, 4, 0.8), (0, 100, 100, 20, 20, 9, 0.8)])
        cands = YoloPostprocessor().decode_candidates(preds, (640, 640))
        self.assertEqual(len(cands), 1)
        self.assertEqual(cands[0].class_id, 4)

    def test_rescale_to_original(self) -> None:
        preds = make_output([(0, 320, 320, 100, 50, 0, 0.9)])
        cands = YoloPostprocessor().decode_candidates(preds, (1280, 720))
        c = cands[0]
        self.assertAlmostEqual(c.x1, 540.0)
        self.assertAlmostEqual(c.x2, 740.0)
        self.assertAlmostEqual(c.y1, 295.0 * 720 / 640)
        self.assertAlmostEqual(c.y2, 345.0 * 720 / 640)

    def test_scale_one_is_identity(self) -> None:
        rng = np.random.default_rng(5)
        specs = []
        for i in range(30):
            cx, cy = rng.uniform(0, 640, size=2)
            w, h = rng.uniform(1, 200, size=2)
            specs.append((i * 7, cx, cy, w, h, i % 50, 0.75))
        preds = make_output(specs)
        raw = preds[0].astype(np.float64)

        post = YoloPostprocessor(PostConfig(clamp_boxes=False))
        cands = post.decode_candidates(preds, (640, 640))
        self.assertEqual(len(cands), 30)
        for c, (anchor, *_rest) in zip(cands, specs):
            cx, cy, w, h = raw[0:4, anchor]
            self.assertEqual(c.as_xyxy(), (cx - w / 2, cy - h / 2, cx + w / 2, cy + h / 2))

    def test_clamps_to_image(self) -> None:
        preds = make_output([(0, 5, 630, 40, 40, 0, 0.9)])
        (clamped,) = YoloPostprocessor().decode_candidates(preds, (640, 640))
        self.assertEqual(clamped.as_xyxy(), (0.0, 610.0, 25.0, 640.0))

        (raw,) = YoloPostprocessor(PostConfig(clamp_boxes=False)).decode_candidates(preds, (640, 640))
        self.assertEqual(raw.as_xyxy(), (-15.0, 610.0, 25.0, 650.0))

    def test_negative_size_dropped(self) -> None:
        preds = make_output(
            [
                (0, 100, 100, -20, 20, 0, 0.9),
                (1, 100, 100, 20, -1, 0, 0.9),
                (2, 100, 100, 20, 20, 0, 0.9),
            ]
        )
        cands = YoloPostprocessor().decode_candidates(preds, (640, 640))
        self.assertEqual(len(cands), 1)
        self.assertTrue(cands[0].x1 <= cands[0].x2 and cands[0].y1 <= cands[0].y2)

    def test_properties_on_dense_output(self) -> None:
        rng = np.random.default_rng(1)
        preds = np.zeros((1, 54, 8400), dtype=np.float32)
        preds[0, 0] = rng.uniform(0, 640, size=8400)
        preds[0, 1] = rng.uniform(0, 640, size=8400)
        preds[0, 2:4] = rng.uniform(5, 150, size=(2, 8400))
        preds[0, 4:] = rng.uniform(0, 0.4, size=(50, 8400))
        hot = rng.choice(8400, size=300, replace=False)
        preds[0, 4 + rng.integers(0, 50, size=300), hot] = rng.uniform(0.3, 1.0, size=300)

        post = YoloPostprocessor()
        dets = post.process(preds, orig_size=(800, 600))
        self.assertGreater(len(dets), 0)
        self.assertEqual(dets, post.process(preds.copy(), orig_size=(800, 600)))

        confs = [d.confidence for d in dets]
        self.assertEqual(confs, sorted(confs, reverse=True))
        self.assertTrue(all(c >= 0.5 for c in confs))
        for i in range(len(dets)):
            d = dets[i]
            self.assertTrue(0 <= d.x1 <= d.x2 <= 800 and 0 <= d.y1 <= d.y2 <= 600)
            for j in range(i + 1, len(dets)):
                self.assertLess(iou(d, dets[j]), 0.7)

    def test_max_detections(self) -> None:
        preds = make_output([(i, 20 + 30 * i, 20, 10, 10, 0, 0.9 - i * 0.01) for i in range(10)])
        dets = YoloPostprocessor(PostConfig(max_detections=3)).process(preds, (640, 640))
        self.assertEqual(len(dets), 3)

    def test_accepts_flat_and_unbatched(self) -> None:
        preds = make_output([(0, 320, 320, 100, 50, 7, 0.9)])
        post = YoloPostprocessor()
        expected = post.process(preds, (640, 640))
        self.assertEqual(post.process(preds.reshape(-1), (640, 640)), expected)
        self.assertEqual(post.process(preds[0], (640, 640)), expected)

    def test_shape_mismatch(self) -> None:
        post = YoloPostprocessor()
        with self.assertRaises(ShapeMismatchError):
            post.process(np.zeros((1, 84, 8400), dtype=np.float32), (640, 640))
        with self.assertRaises(ShapeMismatchError):
            post.process(np.zeros((54 * 8400 - 1,), dtype=np.float32), (640, 640))
        with self.assertRaises(ShapeMismatchError):
            post.process(np.zeros((1, 8400, 54), dtype=np.float32), (640, 640))

    def test_class_names_must_match(self) -> None:
        with self.assertRaises(ValueError):
            YoloPostprocessor(PostConfig(), class_names=("a", "b"))


if __name__ == "__main__":
    unittest.main()
