from __future__ import annotations

import numpy as np
import pytest

from labelstab.data.noisy_labels import create_noisy_label_stream


def test_stream_shape_and_determinism() -> None:
    a = create_noisy_label_stream(n_segments=4, frames_per_segment=25, n_classes=3, seed=11)
    b = create_noisy_label_stream(n_segments=4, frames_per_segment=25, n_classes=3, seed=11)

    assert len(a) == 100
    np.testing.assert_array_equal(a.labels, b.labels)
    np.testing.assert_array_equal(a.scores, b.scores)
    assert set(np.unique(a.labels)) <= {0, 1, 2}


def test_no_flips_means_labels_match_truth() -> None:
    stream = create_noisy_label_stream(flip_prob=0.0, seed=3)
    np.testing.assert_array_equal(stream.labels, stream.truth)


def test_full_flips_never_match_truth() -> None:
    stream = create_noisy_label_stream(flip_prob=1.0, seed=3)
    assert not np.any(stream.labels == stream.truth)


def test_segments_change_gesture_and_are_separated_by_gap() -> None:
    stream = create_noisy_label_stream(n_segments=5, frames_per_segment=10, frame_rate_hz=20.0, gap_s=2.0, seed=5)

    seg_truth = stream.truth.reshape(5, 10)
    assert np.all(seg_truth == seg_truth[:, :1])
    assert np.all(seg_truth[1:, 0] != seg_truth[:-1, 0])

    dts = np.diff(stream.t)
    boundaries = np.arange(9, 49, 10)
    assert dts[boundaries] == pytest.approx(np.full(4, 0.05 + 2.0))
    assert np.delete(dts, boundaries) == pytest.approx(np.full(45, 0.05))


def test_samples_carry_truth_and_timestamps() -> None:
    stream = create_noisy_label_stream(n_segments=2, frames_per_segment=3, seed=1)
    samples = stream.samples()

    assert len(samples) == 6
    assert [s.truth for s in samples] == stream.truth.tolist()
    assert samples[0].t == pytest.approx(0.0)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"n_segments": 0},
        {"frames_per_segment": 0},
        {"n_classes": 1},
        {"flip_prob": 1.5},
        {"frame_rate_hz": 0.0},
        {"gap_s": -1.0},
    ],
)
def test_invalid_parameters(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        create_noisy_label_stream(**kwargs)
