from __future__ import annotations

import argparse
import statistics
import time
from dataclasses import dataclass
from typing import List

import numpy as np
from tqdm import tqdm

from partscan_kit import PostConfig, YoloPostprocessor, suppress
from partscan_kit.constants import INPUT_HEIGHT, INPUT_WIDTH, NUM_ANCHORS, NUM_CLASSES


@dataclass(frozen=True)
class TimingSummary:
    n: int
    mean_ms: float
    p50_ms: float
    p90_ms: float
    p95_ms: float


def _percentile(sorted_values: List[float], q: float) -> float:
    if not sorted_values:
        raise ValueError("No values provided.")
    if q < 0.0 or q > 100.0:
        raise ValueError("q must be in [0, 100].")
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    # Linear interpolation between closest ranks.
    pos = (q / 100.0) * (len(sorted_values) - 1)
    lo = int(np.floor(pos))
    hi = int(np.ceil(pos))
    if lo == hi:
        return float(sorted_values[lo])
    t = pos - lo
    return float(sorted_values[lo] * (1.0 - t) + sorted_values[hi] * t)


def _summarize_ms(values_s: List[float]) -> TimingSummary:
    ms_sorted = sorted(v * 1000.0 for v in values_s)
    return TimingSummary(
        n=len(ms_sorted),
        mean_ms=float(statistics.fmean(ms_sorted)) if ms_sorted else 0.0,
        p50_ms=_percentile(ms_sorted, 50.0) if ms_sorted else 0.0,
        p90_ms=_percentile(ms_sorted, 90.0) if ms_sorted else 0.0,
        p95_ms=_percentile(ms_sorted, 95.0) if ms_sorted else 0.0,
    )


def _format_summary(label: str, s: TimingSummary) -> str:
    return (
        f"{label}: n={s.n} mean={s.mean_ms:.3f}ms p50={s.p50_ms:.3f}ms "
        f"p90={s.p90_ms:.3f}ms p95={s.p95_ms:.3f}ms"
    )


def synthetic_output(n_confident: int, seed: int = 0) -> np.ndarray:
    """
    Raw (1, 54, 8400) output where the first `n_confident` anchors clear the 0.5 threshold.
    """

    rng = np.random.default_rng(seed)
    out = np.zeros((4 + NUM_CLASSES, NUM_ANCHORS), dtype=np.float32)
    out[0] = rng.uniform(0, INPUT_WIDTH, size=NUM_ANCHORS)
    out[1] = rng.uniform(0, INPUT_HEIGHT, size=NUM_ANCHORS)
    out[2] = rng.uniform(10, 160, size=NUM_ANCHORS)
    out[3] = rng.uniform(10, 160, size=NUM_ANCHORS)
    out[4:] = rng.uniform(0.0, 0.3, size=(NUM_CLASSES, NUM_ANCHORS))

    hot = rng.integers(0, NUM_CLASSES, size=n_confident)
    out[4 + hot, np.arange(n_confident)] = rng.uniform(0.5, 1.0, size=n_confident)
    return out[None, ...]


def main() -> int:
    parser = argparse.ArgumentParser(description="Benchmark decode + NMS latency on synthetic YOLOv8 output.")
    parser.add_argument("--boxes", type=int, default=300, help="Anchors above the confidence threshold.")
    parser.add_argument("--iou", type=float, default=0.7, help="IoU threshold for NMS.")
    parser.add_argument("--iterations", type=int, default=200, help="Recorded iterations.")
    parser.add_argument("--warmup", type=int, default=10, help="Warmup iterations to run but not record.")
    args = parser.parse_args()

    if not 1 <= args.boxes <= NUM_ANCHORS:
        raise ValueError(f"--boxes must be in 1..{NUM_ANCHORS}")
    if args.iterations < 1:
        raise ValueError("--iterations must be >= 1")
    if args.warmup < 0:
        raise ValueError("--warmup must be >= 0")

    post = YoloPostprocessor(PostConfig(iou_threshold=float(args.iou)))
    preds = synthetic_output(int(args.boxes))
    orig_size = (1280, 720)

    t_decode: List[float] = []
    t_nms: List[float] = []
    t_total: List[float] = []
    kept = 0

    for step in tqdm(range(args.warmup + args.iterations), desc="benchmark", unit="it"):
        t0 = time.perf_counter()
        candidates = post.decode_candidates(preds, orig_size)
        t1 = time.perf_counter()
        survivors = suppress(candidates, post.cfg.iou_threshold)
        t2 = time.perf_counter()
        post.process(preds, orig_size)
        t3 = time.perf_counter()

        if step < args.warmup:
            continue
        t_decode.append(t1 - t0)
        t_nms.append(t2 - t1)
        t_total.append(t3 - t2)
        kept = len(survivors)

    print(_format_summary("decode", _summarize_ms(t_decode)))
    print(_format_summary("nms", _summarize_ms(t_nms)))
    print(_format_summary("postprocess_total", _summarize_ms(t_total)))
    print(f"candidates={len(candidates)} kept={kept} warmup={args.warmup}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
