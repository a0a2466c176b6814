from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np
from sklearn.metrics import accuracy_score, confusion_matrix

from labelstab.streaming.protocol import ObservationSample
from labelstab.streaming.stabilizer import LabelStabilizer


@dataclass(frozen=True)
class StreamRun:
    t: np.ndarray
    raw_labels: np.ndarray
    raw_scores: np.ndarray
    stable_labels: np.ndarray
    stable_scores: np.ndarray
    truth: np.ndarray | None


@dataclass(frozen=True)
class StabilityMetrics:
    n: int
    raw_switches: int
    stable_switches: int
    raw_accuracy: float | None
    stable_accuracy: float | None
    raw_confusion: np.ndarray | None = None
    stable_confusion: np.ndarray | None = None

    @property
    def switch_reduction(self) -> float:
        """Fraction of raw label switches removed by stabilization."""
        if self.raw_switches == 0:
            return 0.0
        return 1.0 - (self.stable_switches / self.raw_switches)

    def to_dict(self) -> dict[str, object]:
        return {
            "n": self.n,
            "raw_switches": self.raw_switches,
            "stable_switches": self.stable_switches,
            "switch_reduction": self.switch_reduction,
            "raw_accuracy": self.raw_accuracy,
            "stable_accuracy": self.stable_accuracy,
        }


def count_label_switches(labels: Iterable[int]) -> int:
    arr = np.asarray(list(labels))
    if arr.size < 2:
        return 0
    return int(np.count_nonzero(arr[1:] != arr[:-1]))


def run_stabilizer(stabilizer: LabelStabilizer, samples: Sequence[ObservationSample]) -> StreamRun:
    """Feed `samples` through `stabilizer` in order and collect both streams.

    Every sample needs a timestamp here; live streams fill missing ones with
    wall-clock time before calling the stabilizer.
    """

    t_rows: list[float] = []
    raw_labels: list[int] = []
    raw_scores: list[float] = []
    stable_labels: list[int] = []
    stable_scores: list[float] = []
    truth_rows: list[int] = []

    for s in samples:
        if s.t is None:
            raise ValueError("run_stabilizer requires a timestamp on every sample.")
        out = stabilizer.update(s.observation, t=s.t)
        t_rows.append(s.t)
        raw_labels.append(s.observation.label)
        raw_scores.append(s.observation.score)
        stable_labels.append(out.label)
        stable_scores.append(out.score)
        if s.truth is not None:
            truth_rows.append(s.truth)

    # Truth is only usable when every sample carries it.
    truth = np.asarray(truth_rows, dtype=np.int64) if samples and len(truth_rows) == len(samples) else None

    return StreamRun(
        t=np.asarray(t_rows, dtype=np.float64),
        raw_labels=np.asarray(raw_labels, dtype=np.int64),
        raw_scores=np.asarray(raw_scores, dtype=np.float64),
        stable_labels=np.asarray(stable_labels, dtype=np.int64),
        stable_scores=np.asarray(stable_scores, dtype=np.float64),
        truth=truth,
    )


def evaluate_stream(
    raw: np.ndarray,
    stable: np.ndarray,
    truth: np.ndarray | None = None,
    *,
    class_labels: list[int] | None = None,
) -> StabilityMetrics:
    raw = np.asarray(raw)
    stable = np.asarray(stable)
    if raw.shape != stable.shape:
        raise ValueError(f"raw and stable must have the same shape, got {raw.shape} and {stable.shape}")

    raw_acc = stable_acc = None
    raw_cm = stable_cm = None
    if truth is not None:
        truth = np.asarray(truth)
        if truth.shape != raw.shape:
            raise ValueError(f"truth must match raw shape {raw.shape}, got {truth.shape}")
        if raw.size:
            raw_acc = float(accuracy_score(truth, raw))
            stable_acc = float(accuracy_score(truth, stable))
            if class_labels is not None:
                raw_cm = confusion_matrix(truth, raw, labels=list(class_labels))
                stable_cm = confusion_matrix(truth, stable, labels=list(class_labels))

    return StabilityMetrics(
        n=int(raw.size),
        raw_switches=count_label_switches(raw),
        stable_switches=count_label_switches(stable),
        raw_accuracy=raw_acc,
        stable_accuracy=stable_acc,
        raw_confusion=raw_cm,
        stable_confusion=stable_cm,
    )


def normalize_confusion(confusion: np.ndarray) -> np.ndarray:
    with np.errstate(divide="ignore", invalid="ignore"):
        cm_norm = confusion.astype(np.float64) / confusion.sum(axis=1, keepdims=True)
        return np.nan_to_num(cm_norm)
