#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from labelstab.data.noisy_labels import create_noisy_label_stream
from labelstab.streaming.protocol import encode_sample


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Generate noisy per-frame classifier outputs as JSON lines (for local smoke tests).")
    p.add_argument("--segments", type=int, default=6)
    p.add_argument("--frames-per-segment", type=int, default=60)
    p.add_argument("--classes", type=int, default=5)
    p.add_argument("--flip-prob", type=float, default=0.2, help="Probability that a frame is misclassified.")
    p.add_argument("--frame-rate-hz", type=float, default=30.0)
    p.add_argument("--gap-s", type=float, default=1.5, help="Inactivity gap between gesture segments.")
    p.add_argument("--seed", type=int, default=42)
    p.add_argument("--no-truth", action="store_true", help="Omit the ground-truth field.")
    p.add_argument("--realtime", action="store_true", help="Sleep between frames to simulate real-time streaming.")
    return p.parse_args()


def main() -> int:
    args = _parse_args()

    if args.frame_rate_hz <= 0:
        raise SystemExit("--frame-rate-hz must be > 0")

    t0 = time.time()
    try:
        stream = create_noisy_label_stream(
            n_segments=args.segments,
            frames_per_segment=args.frames_per_segment,
            n_classes=args.classes,
            flip_prob=args.flip_prob,
            frame_rate_hz=args.frame_rate_hz,
            gap_s=args.gap_s,
            start_t=t0,
            seed=args.seed,
        )
    except ValueError as e:
        raise SystemExit(str(e)) from e

    prev_t = None
    for sample in stream.samples():
        if args.realtime and prev_t is not None:
            time.sleep(max(0.0, sample.t - prev_t))
        prev_t = sample.t

        msg = encode_sample(sample)
        if args.no_truth:
            msg.pop("truth", None)

        sys.stdout.write(json.dumps(msg) + "\n")
        sys.stdout.flush()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
