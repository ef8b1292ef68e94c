"""Evaluation metrics for fitted forests."""

from typing import Dict, Sequence
import numpy as np
from sklearn.metrics import accuracy_score


def compute_accuracy(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Compute classification accuracy.

    Args:
        y_true: True labels.
        y_pred: Predicted labels.

    Returns:
        Fraction of correct predictions (0-1, higher is better).
    """
    if len(y_true) == 0:
        return 0.0
    return float(accuracy_score(np.asarray(y_true), np.asarray(y_pred)))


def count_selected_features(importance: Dict[str, float]) -> int:
    """Number of features with nonzero importance."""
    return sum(1 for v in importance.values() if v > 0.0)


def summarize_accuracies(values: Sequence[float]) -> Dict[str, float]:
    """Mean, median, std, min and max of a set of accuracies."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return {'mean': np.nan, 'median': np.nan, 'std': np.nan, 'min': np.nan, 'max': np.nan}
    return {
        'mean': float(np.mean(arr)),
        'median': float(np.median(arr)),
        'std': float(np.std(arr)),
        'min': float(np.min(arr)),
        'max': float(np.max(arr)),
    }
