from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from labelstab.streaming.protocol import Observation, ObservationSample


@dataclass(frozen=True)
class NoisyLabelStream:
    t: np.ndarray  # (n,) float64 seconds
    truth: np.ndarray  # (n,) int64
    labels: np.ndarray  # (n,) int64, noisy per-frame labels
    scores: np.ndarray  # (n,) float64
    n_classes: int

    def __len__(self) -> int:
        return int(self.t.shape[0])

    def samples(self) -> list[ObservationSample]:
        return [
            ObservationSample(
                t=float(self.t[i]),
                observation=Observation(label=int(self.labels[i]), score=float(self.scores[i])),
                truth=int(self.truth[i]),
            )
            for i in range(len(self))
        ]


def create_noisy_label_stream(
    *,
    n_segments: int = 6,
    frames_per_segment: int = 60,
    n_classes: int = 5,
    flip_prob: float = 0.2,
    frame_rate_hz: float = 30.0,
    gap_s: float = 1.5,
    start_t: float = 0.0,
    seed: int = 42,
) -> NoisyLabelStream:
    """Create a per-frame classifier output stream with transient misclassifications.

    Each segment holds one ground-truth gesture; segments are separated by an
    inactivity gap of `gap_s` seconds. Correct frames score high, flipped
    frames score lower, which is roughly how a softmax classifier misbehaves.
    """

    if n_segments <= 0 or frames_per_segment <= 0:
        raise ValueError("n_segments and frames_per_segment must be > 0")
    if n_classes < 2:
        raise ValueError("n_classes must be >= 2")
    if not 0.0 <= flip_prob <= 1.0:
        raise ValueError("flip_prob must be within [0, 1]")
    if frame_rate_hz <= 0:
        raise ValueError("frame_rate_hz must be > 0")
    if gap_s < 0:
        raise ValueError("gap_s must be >= 0")

    rng = np.random.default_rng(seed)
    dt = 1.0 / frame_rate_hz

    t_rows: list[np.ndarray] = []
    truth_rows: list[np.ndarray] = []
    label_rows: list[np.ndarray] = []
    score_rows: list[np.ndarray] = []

    seg_start = float(start_t)
    prev_truth = -1
    for _ in range(n_segments):
        # Consecutive segments always show a different gesture.
        choices = [c for c in range(n_classes) if c != prev_truth]
        truth = int(rng.choice(choices))
        prev_truth = truth

        t = seg_start + dt * np.arange(frames_per_segment, dtype=np.float64)
        truth_arr = np.full(frames_per_segment, truth, dtype=np.int64)

        flips = rng.random(frames_per_segment) < flip_prob
        # Offset in [1, n_classes) guarantees a flipped label differs from truth.
        offsets = rng.integers(1, n_classes, size=frames_per_segment)
        labels = np.where(flips, (truth + offsets) % n_classes, truth).astype(np.int64)

        scores = np.where(
            flips,
            rng.uniform(0.35, 0.7, size=frames_per_segment),
            rng.uniform(0.6, 0.99, size=frames_per_segment),
        )

        t_rows.append(t)
        truth_rows.append(truth_arr)
        label_rows.append(labels)
        score_rows.append(scores.astype(np.float64))

        seg_start = float(t[-1]) + dt + gap_s

    return NoisyLabelStream(
        t=np.concatenate(t_rows),
        truth=np.concatenate(truth_rows),
        labels=np.concatenate(label_rows),
        scores=np.concatenate(score_rows),
        n_classes=n_classes,
    )
