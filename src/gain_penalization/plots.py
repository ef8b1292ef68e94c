"""Plotting utilities for sweep and consolidation results."""

from pathlib import Path
from typing import List, Optional, Sequence, Tuple
import numpy as np

try:
    import matplotlib.pyplot as plt
    MATPLOTLIB_AVAILABLE = True
except ImportError:
    MATPLOTLIB_AVAILABLE = False

from .consolidation import ConsolidationResult
from .display import summarize_sweep
from .records import EvaluationRecord, records_to_frame


def _check_matplotlib():
    if not MATPLOTLIB_AVAILABLE:
        raise ImportError("matplotlib is required for plotting")


def plot_accuracy_vs_gamma(
    records: Sequence[EvaluationRecord],
    title: str = "Test accuracy vs gamma",
    figsize: Tuple[int, int] = (12, 5),
):
    """Plot mean test accuracy against gamma, one panel per relevance source.

    Each line is one (fraction, lambda0) pair, averaged over folds.

    Args:
        records: Sweep evaluation records.
        title: Figure title.
        figsize: Figure size.

    Returns:
        Matplotlib figure.
    """
    _check_matplotlib()

    summary = summarize_sweep(records)
    sources = sorted(summary['source'].dropna().unique())

    fig, axes = plt.subplots(1, max(len(sources), 1), figsize=figsize, sharey=True, squeeze=False)
    for ax, source in zip(axes[0], sources):
        subset = summary[summary['source'] == source]
        for (fraction, lambda0), group in subset.groupby(['fraction', 'lambda0']):
            group = group.sort_values('gamma')
            ax.plot(
                group['gamma'], group['test_accuracy_mean'],
                marker='o', linewidth=1.2,
                label=f"f={fraction:.2f}, l0={lambda0:.2f}",
            )
        ax.set_title(source)
        ax.set_xlabel("gamma")
        ax.grid(True, alpha=0.3)
        ax.legend(fontsize=7)

    axes[0][0].set_ylabel("Mean test accuracy")
    fig.suptitle(title)
    fig.tight_layout()
    return fig


def plot_features_vs_accuracy(
    records: Sequence[EvaluationRecord],
    title: str = "Selected features vs test accuracy",
    figsize: Tuple[int, int] = (8, 6),
    ax=None,
):
    """Scatter the number of selected features against test accuracy.

    Args:
        records: Sweep or re-evaluation records.
        title: Plot title.
        figsize: Figure size.
        ax: Optional matplotlib axis.

    Returns:
        Matplotlib axis.
    """
    _check_matplotlib()

    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)

    df = records_to_frame(records)
    if df['source'].notna().any():
        for source, group in df.groupby('source'):
            ax.scatter(group['n_features'], group['test_accuracy'], alpha=0.6, s=20, label=source)
        ax.legend()
    else:
        ax.scatter(df['n_features'], df['test_accuracy'], alpha=0.6, s=20)

    ax.set_xlabel("Selected features")
    ax.set_ylabel("Test accuracy")
    ax.set_title(title)
    ax.grid(True, alpha=0.3)

    return ax


def plot_final_accuracy(
    result: ConsolidationResult,
    title: str = "Final model accuracy",
    figsize: Tuple[int, int] = (8, 5),
    bins: Optional[int] = None,
    ax=None,
):
    """Histogram of per-fold test accuracy of the final model.

    Args:
        result: Consolidation result.
        title: Plot title.
        figsize: Figure size.
        bins: Histogram bins (default: one per fold, capped at 20).
        ax: Optional matplotlib axis.

    Returns:
        Matplotlib axis.
    """
    _check_matplotlib()

    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)

    accuracies = np.array([r.test_accuracy for r in result.records])
    bins = bins or min(max(len(accuracies), 1), 20)

    ax.hist(accuracies, bins=bins, alpha=0.7, color="steelblue", edgecolor="black")
    ax.axvline(result.mean_test_accuracy, color="red", linestyle="--",
               label=f"Mean: {result.mean_test_accuracy:.3f}")
    ax.axvline(result.median_test_accuracy, color="green", linestyle=":",
               label=f"Median: {result.median_test_accuracy:.3f}")

    ax.set_xlabel("Test accuracy")
    ax.set_ylabel("Folds")
    ax.set_title(title)
    ax.legend()
    ax.grid(True, alpha=0.3)

    return ax


def save_figures(pipeline, output_dir) -> List[Path]:
    """Render the standard figures of a finished pipeline to PNG files.

    Returns:
        Paths of the written files.
    """
    _check_matplotlib()

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    paths = []

    fig = plot_accuracy_vs_gamma(pipeline.sweep_result_.records)
    path = output_dir / "accuracy_vs_gamma.png"
    fig.savefig(path, dpi=120)
    plt.close(fig)
    paths.append(path)

    ax = plot_features_vs_accuracy(pipeline.sweep_result_.records)
    path = output_dir / "features_vs_accuracy.png"
    ax.figure.savefig(path, dpi=120)
    plt.close(ax.figure)
    paths.append(path)

    ax = plot_final_accuracy(pipeline.consolidation_)
    path = output_dir / "final_accuracy.png"
    ax.figure.savefig(path, dpi=120)
    plt.close(ax.figure)
    paths.append(path)

    return paths
