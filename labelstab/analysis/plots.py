from __future__ import annotations

import os
from pathlib import Path

_DEFAULT_MPLCONFIGDIR = Path.cwd() / ".cache" / "matplotlib"
if "MPLCONFIGDIR" not in os.environ:
    _DEFAULT_MPLCONFIGDIR.mkdir(parents=True, exist_ok=True)
    os.environ["MPLCONFIGDIR"] = str(_DEFAULT_MPLCONFIGDIR)

# Headless-safe backend (avoids macOS GUI backends in sandboxed environments).
os.environ.setdefault("MPLBACKEND", "Agg")

import matplotlib.pyplot as plt
import seaborn as sns

from labelstab.analysis.evaluation import StabilityMetrics, StreamRun, normalize_confusion


def plot_label_timeline(
    run: StreamRun,
    *,
    title: str,
    out_path: str | Path,
) -> None:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    t = run.t - run.t[0] if run.t.size else run.t

    fig, axes = plt.subplots(2, 1, figsize=(12, 6), sharex=True)
    axes[0].step(t, run.raw_labels, "r-", where="post", alpha=0.6, label="Raw")
    axes[0].step(t, run.stable_labels, "b-", where="post", linewidth=2, label="Stabilized")
    if run.truth is not None:
        axes[0].step(t, run.truth, "k--", where="post", alpha=0.7, label="Truth")
    axes[0].set_ylabel("Label")
    axes[0].set_title("Labels")
    axes[0].legend(loc="upper right")
    axes[0].grid(True, alpha=0.3)

    axes[1].plot(t, run.raw_scores, "r.", alpha=0.5, label="Raw")
    axes[1].plot(t, run.stable_scores, "b-", label="Stabilized")
    axes[1].set_xlabel("Time (s)")
    axes[1].set_ylabel("Score")
    axes[1].set_title("Scores")
    axes[1].legend(loc="lower right")
    axes[1].grid(True, alpha=0.3)

    plt.suptitle(title, fontsize=12, fontweight="bold")
    plt.tight_layout()
    fig.savefig(out_path, dpi=150, bbox_inches="tight")
    plt.close(fig)


def plot_stream_confusions(
    metrics: StabilityMetrics,
    class_names: list[str] | tuple[str, ...],
    *,
    title: str,
    out_path: str | Path,
) -> None:
    """Raw and stabilized labels against truth, row-normalized, side by side."""

    if metrics.raw_confusion is None or metrics.stable_confusion is None:
        raise ValueError("Confusion matrices need truth labels and class_labels in evaluate_stream().")

    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    names = list(class_names)
    fig, axes = plt.subplots(1, 2, figsize=(14, 6))
    panels = (
        (axes[0], metrics.raw_confusion, "Raw", metrics.raw_accuracy),
        (axes[1], metrics.stable_confusion, "Stabilized", metrics.stable_accuracy),
    )
    for ax, confusion, name, acc in panels:
        sns.heatmap(
            normalize_confusion(confusion),
            annot=True,
            fmt=".2f",
            cmap="Blues",
            vmin=0.0,
            vmax=1.0,
            xticklabels=names,
            yticklabels=names,
            ax=ax,
        )
        ax.set_xlabel(f"{name} label")
        ax.set_ylabel("True label")
        ax.set_title(f"{name} (acc {acc * 100:.1f}%)" if acc is not None else name)

    plt.suptitle(title, fontsize=12, fontweight="bold")
    plt.tight_layout()
    fig.savefig(out_path, dpi=150, bbox_inches="tight")
    plt.close(fig)
