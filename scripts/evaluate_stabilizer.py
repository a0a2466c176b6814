#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from labelstab.analysis.evaluation import evaluate_stream, run_stabilizer
from labelstab.analysis.plots import plot_label_timeline, plot_stream_confusions
from labelstab.data.noisy_labels import create_noisy_label_stream
from labelstab.streaming.stabilizer import LabelStabilizer, ResetPolicy


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compare raw vs stabilized labels on a synthetic noisy stream.")
    parser.add_argument("--queue-sizes", type=int, nargs="+", default=[1, 3, 5, 9, 15])
    parser.add_argument("--queue-time-out-s", type=float, default=1.0)
    parser.add_argument("--no-time-out", action="store_true", help="Never reset the window on timestamp gaps.")
    parser.add_argument(
        "--reset-policy",
        choices=[p.value for p in ResetPolicy],
        default=ResetPolicy.CLEAR_AFTER_APPEND.value,
    )
    parser.add_argument(
        "--drop-oldest-before-vote",
        action="store_true",
        help="Drop the oldest entry as soon as the window fills, so votes cover queue-size - 1 entries.",
    )
    parser.add_argument("--segments", type=int, default=8)
    parser.add_argument("--frames-per-segment", type=int, default=90)
    parser.add_argument("--classes", type=int, default=5)
    parser.add_argument("--flip-prob", type=float, default=0.25)
    parser.add_argument("--frame-rate-hz", type=float, default=30.0)
    parser.add_argument("--gap-s", type=float, default=1.5)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--outputs-dir", default="outputs")
    parser.add_argument("--no-plots", action="store_true")
    return parser.parse_args()


def main() -> int:
    args = _parse_args()

    if any(q < 1 for q in args.queue_sizes):
        raise SystemExit("--queue-sizes must all be >= 1.")
    queue_time_out_s = None if args.no_time_out else args.queue_time_out_s
    if queue_time_out_s is not None and queue_time_out_s <= 0:
        raise SystemExit("--queue-time-out-s must be > 0.")

    outputs_dir = Path(args.outputs_dir)
    outputs_dir.mkdir(parents=True, exist_ok=True)

    stream = create_noisy_label_stream(
        n_segments=args.segments,
        frames_per_segment=args.frames_per_segment,
        n_classes=args.classes,
        flip_prob=args.flip_prob,
        frame_rate_hz=args.frame_rate_hz,
        gap_s=args.gap_s,
        seed=args.seed,
    )
    samples = stream.samples()
    class_labels = list(range(stream.n_classes))
    class_names = [str(c) for c in class_labels]

    print(f"Stream: {len(stream)} frames, {args.segments} segments, {args.classes} classes, flip={args.flip_prob:.2f}")
    timeout = "off" if queue_time_out_s is None else f"{queue_time_out_s:.2f}s"
    print(f"Time-out: {timeout} | Reset: {args.reset_policy}\n")
    print(f"{'queue':>5}  {'raw_acc':>7}  {'stab_acc':>8}  {'raw_sw':>6}  {'stab_sw':>7}  {'reduction':>9}")

    report: dict[str, object] = {
        "stream": {
            "frames": len(stream),
            "segments": args.segments,
            "classes": args.classes,
            "flip_prob": args.flip_prob,
            "seed": args.seed,
        },
        "queue_time_out_s": queue_time_out_s,
        "reset_policy": args.reset_policy,
        "drop_oldest_before_vote": args.drop_oldest_before_vote,
        "results": [],
    }

    for queue_size in args.queue_sizes:
        stabilizer = LabelStabilizer.configure(
            queue_size,
            queue_time_out_s,
            reset_policy=args.reset_policy,
            drop_oldest_before_vote=args.drop_oldest_before_vote,
        )
        run = run_stabilizer(stabilizer, samples)
        metrics = evaluate_stream(run.raw_labels, run.stable_labels, run.truth, class_labels=class_labels)

        print(
            f"{queue_size:>5}  {metrics.raw_accuracy * 100:>6.2f}%  {metrics.stable_accuracy * 100:>7.2f}%"
            f"  {metrics.raw_switches:>6}  {metrics.stable_switches:>7}  {metrics.switch_reduction * 100:>8.1f}%"
        )
        report["results"].append({"queue_size": queue_size, **metrics.to_dict()})

        if args.no_plots:
            continue
        plot_label_timeline(
            run,
            title=f"Label stabilization (queue_size={queue_size})",
            out_path=outputs_dir / f"timeline_q{queue_size}.png",
        )
        if metrics.stable_confusion is not None:
            plot_stream_confusions(
                metrics,
                class_names,
                title=f"Raw vs stabilized labels against truth (queue_size={queue_size})",
                out_path=outputs_dir / f"confusion_q{queue_size}.png",
            )

    out_json = outputs_dir / "stabilizer_report.json"
    out_json.write_text(json.dumps(report, indent=2), encoding="utf-8")
    print(f"\nSaved: {out_json}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
