from __future__ import annotations

from pathlib import Path

import pytest

from labelstab.analysis.evaluation import evaluate_stream, run_stabilizer
from labelstab.analysis.plots import plot_label_timeline, plot_stream_confusions
from labelstab.data.noisy_labels import create_noisy_label_stream
from labelstab.streaming.stabilizer import LabelStabilizer


def test_plots_are_written(tmp_path: Path) -> None:
    stream = create_noisy_label_stream(n_segments=2, frames_per_segment=30, n_classes=3, seed=9)
    run = run_stabilizer(LabelStabilizer.configure(5, queue_time_out_s=1.0), stream.samples())
    metrics = evaluate_stream(run.raw_labels, run.stable_labels, run.truth, class_labels=[0, 1, 2])

    timeline = tmp_path / "plots" / "timeline.png"
    confusion = tmp_path / "plots" / "confusion.png"
    plot_label_timeline(run, title="timeline", out_path=timeline)
    plot_stream_confusions(metrics, ["0", "1", "2"], title="confusion", out_path=confusion)

    assert timeline.stat().st_size > 0
    assert confusion.stat().st_size > 0


def test_confusion_plot_needs_truth(tmp_path: Path) -> None:
    metrics = evaluate_stream([1, 2], [1, 1])
    with pytest.raises(ValueError):
        plot_stream_confusions(metrics, ["1", "2"], title="no truth", out_path=tmp_path / "c.png")
    assert not (tmp_path / "c.png").exists()
