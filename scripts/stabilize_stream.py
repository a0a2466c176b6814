#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import socket
import sys
import time
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from labelstab.streaming.protocol import parse_payload
from labelstab.streaming.stabilizer import LabelStabilizer, ResetPolicy, StabilizerConfig


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Receive per-frame classifier outputs (UDP JSON) and emit a majority-vote stabilized label stream."
    )
    parser.add_argument(
        "--stdin",
        action="store_true",
        help="Read JSON payloads (one per line) from stdin instead of binding a UDP socket (useful for local smoke tests).",
    )
    parser.add_argument("--listen-host", default="0.0.0.0")
    parser.add_argument("--listen-port", type=int, default=5600)

    parser.add_argument("--queue-size", type=int, default=5, help="Voting window size. Values <= 1 disable stabilization.")
    parser.add_argument(
        "--queue-time-out-s",
        type=float,
        default=None,
        help="Reset the window when consecutive timestamps are at least this many seconds apart.",
    )
    parser.add_argument(
        "--reset-policy",
        choices=[p.value for p in ResetPolicy],
        default=ResetPolicy.CLEAR_AFTER_APPEND.value,
        help="Whether a time-out reset also drops the sample that arrived after the gap.",
    )
    parser.add_argument(
        "--drop-oldest-before-vote",
        action="store_true",
        help="Drop the oldest entry as soon as the window fills, so votes cover queue-size - 1 entries.",
    )

    parser.add_argument("--log-jsonl", default=None, help="Optional JSONL file with one raw+stable record per observation.")
    parser.add_argument("--forward-host", default=None, help="Optional UDP host for the stabilized stream.")
    parser.add_argument("--forward-port", type=int, default=0, help="Optional UDP port for the stabilized stream.")
    parser.add_argument("--quiet", action="store_true", help="Reduce console output.")
    return parser.parse_args()


def _seconds_now() -> float:
    return time.time()


def main() -> int:
    args = _parse_args()

    if args.queue_size < 1:
        raise SystemExit("--queue-size must be >= 1.")
    if args.queue_time_out_s is not None and args.queue_time_out_s <= 0:
        raise SystemExit("--queue-time-out-s must be > 0.")

    stabilizer = LabelStabilizer(
        config=StabilizerConfig(
            queue_size=args.queue_size,
            queue_time_out_s=args.queue_time_out_s,
            reset_policy=ResetPolicy(args.reset_policy),
            drop_oldest_before_vote=args.drop_oldest_before_vote,
        )
    )

    log_fh = None
    if args.log_jsonl:
        log_path = Path(args.log_jsonl)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        log_fh = log_path.open("w", encoding="utf-8")

    forward_sock = None
    forward_addr = None
    if args.forward_host and args.forward_port:
        forward_sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        forward_addr = (args.forward_host, int(args.forward_port))

    sock = None
    if not args.stdin:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.bind((args.listen_host, int(args.listen_port)))

    if not args.quiet:
        if args.stdin:
            print("Input: stdin (one JSON payload per line)")
        else:
            print(f"Listening UDP on {args.listen_host}:{args.listen_port}")
        if stabilizer.enabled:
            timeout = "off" if args.queue_time_out_s is None else f"{args.queue_time_out_s:.2f}s"
            print(f"Window: {args.queue_size} | Time-out: {timeout} | Reset: {stabilizer.reset_policy.value}")
        else:
            print("Window: disabled (queue-size <= 1), passing labels through")
        if args.log_jsonl:
            print(f"Log JSONL: {args.log_jsonl}")
        if forward_addr:
            print(f"Forward UDP: {forward_addr[0]}:{forward_addr[1]}")
        print()

    try:
        while True:
            if args.stdin:
                line = sys.stdin.readline()
                if not line:
                    break
                payload = line.encode("utf-8")
            else:
                assert sock is not None
                payload, _addr = sock.recvfrom(65535)
            try:
                samples = parse_payload(payload)
            except ValueError as e:
                if not args.quiet:
                    print(f"⚠️ Bad payload: {e}")
                continue

            for s in samples:
                t = s.t if s.t is not None else _seconds_now()
                stable = stabilizer.update(s.observation, t=t)

                out: dict[str, object] = {
                    "t": t,
                    "raw_label": s.observation.label,
                    "raw_score": s.observation.score,
                    "label": stable.label,
                    "score": stable.score,
                }
                if s.truth is not None:
                    out["truth"] = s.truth

                if log_fh is not None:
                    log_fh.write(json.dumps(out) + "\n")
                    log_fh.flush()

                if not args.quiet:
                    print(json.dumps(out))

                if forward_sock is not None and forward_addr is not None:
                    msg = {"t": t, "label": stable.label, "score": stable.score}
                    forward_sock.sendto(json.dumps(msg).encode("utf-8"), forward_addr)

    except KeyboardInterrupt:
        if not args.quiet:
            print("\nStopping…")
        return 0
    finally:
        if sock is not None:
            sock.close()
        if forward_sock is not None:
            forward_sock.close()
        if log_fh is not None:
            log_fh.close()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
