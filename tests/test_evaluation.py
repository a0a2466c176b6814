from __future__ import annotations

import numpy as np
import pytest

from labelstab.analysis.evaluation import count_label_switches, evaluate_stream, normalize_confusion, run_stabilizer
from labelstab.data.noisy_labels import create_noisy_label_stream
from labelstab.streaming.protocol import Observation, ObservationSample
from labelstab.streaming.stabilizer import LabelStabilizer


def test_count_label_switches() -> None:
    assert count_label_switches([1, 1, 2, 2, 1]) == 2
    assert count_label_switches([4]) == 0
    assert count_label_switches([]) == 0


def test_evaluate_stream_with_truth() -> None:
    metrics = evaluate_stream(
        np.array([1, 2, 1, 1]),
        np.array([1, 1, 1, 1]),
        np.array([1, 1, 1, 1]),
        class_labels=[1, 2],
    )

    assert metrics.n == 4
    assert metrics.raw_accuracy == pytest.approx(0.75)
    assert metrics.stable_accuracy == pytest.approx(1.0)
    assert metrics.raw_switches == 2
    assert metrics.stable_switches == 0
    assert metrics.switch_reduction == pytest.approx(1.0)
    np.testing.assert_array_equal(metrics.raw_confusion, [[3, 1], [0, 0]])
    assert metrics.to_dict()["stable_switches"] == 0


def test_evaluate_stream_without_truth() -> None:
    metrics = evaluate_stream(np.array([1, 1]), np.array([1, 1]))
    assert metrics.raw_accuracy is None
    assert metrics.stable_confusion is None
    assert metrics.switch_reduction == 0.0


def test_evaluate_stream_shape_mismatch() -> None:
    with pytest.raises(ValueError):
        evaluate_stream(np.array([1, 2]), np.array([1]))


def test_normalize_confusion_rows() -> None:
    norm = normalize_confusion(np.array([[3, 1], [0, 0]]))
    np.testing.assert_allclose(norm, [[0.75, 0.25], [0.0, 0.0]])


def test_stabilizer_removes_most_flicker() -> None:
    stream = create_noisy_label_stream(n_segments=6, frames_per_segment=60, flip_prob=0.2, gap_s=1.5, seed=42)
    stabilizer = LabelStabilizer.configure(7, queue_time_out_s=0.5)

    run = run_stabilizer(stabilizer, stream.samples())
    metrics = evaluate_stream(run.raw_labels, run.stable_labels, run.truth)

    assert run.truth is not None
    assert len(run.stable_labels) == len(stream)
    assert metrics.stable_switches < metrics.raw_switches / 2
    assert metrics.stable_accuracy >= metrics.raw_accuracy


def test_run_stabilizer_drops_partial_truth() -> None:
    samples = [
        ObservationSample(t=0.0, observation=Observation(1, 0.9), truth=1),
        ObservationSample(t=0.1, observation=Observation(1, 0.8)),
    ]
    run = run_stabilizer(LabelStabilizer.configure(3), samples)
    assert run.truth is None
    np.testing.assert_array_equal(run.stable_labels, [1, 1])


def test_run_stabilizer_requires_timestamps() -> None:
    samples = [ObservationSample(t=None, observation=Observation(1, 0.9))]
    with pytest.raises(ValueError):
        run_stabilizer(LabelStabilizer.configure(3), samples)
