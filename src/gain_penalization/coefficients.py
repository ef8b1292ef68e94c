"""Penalization coefficients for gain-penalized random forests.

A feature's coefficient interpolates between a baseline penalty and its
normalized relevance:

    coef(feature) = (1 - gamma) * lambda0 + gamma * relevance(feature)

Relevance is either the importance of a previously trained unpenalized
forest or the mutual information between the discretized feature and the
label, in both cases divided by its maximum so the most relevant feature
gets 1. With lambda0 and gamma in [0, 1) every coefficient stays in
[lambda0 * (1 - gamma), (1 - gamma) * lambda0 + gamma], inside [0, 1).
"""

import math
from typing import Dict, Mapping, Optional, Union
import numpy as np
import pandas as pd
from sklearn.metrics import mutual_info_score

from .config import CoefficientSource
from .exceptions import DegenerateRelevance, InvalidHyperparameter
from .records import FittedModelRecord, HyperparameterCombination, PenalizationVector


def normalize_relevance(raw: Union[Mapping[str, float], pd.Series]) -> pd.Series:
    """Scale relevance scores so the maximum is 1.

    Args:
        raw: Non-negative relevance per feature.

    Returns:
        Series of relevance values in [0, 1], same order as ``raw``.

    Raises:
        DegenerateRelevance: If the maximum is zero, negative or not finite.
    """
    scores = pd.Series(raw, dtype=float)
    if scores.empty:
        raise DegenerateRelevance("No relevance scores to normalize")
    if scores.isna().any():
        raise DegenerateRelevance(
            f"Undefined relevance for features: {scores[scores.isna()].index.tolist()[:5]}"
        )
    if (scores < 0).any():
        raise ValueError("Relevance scores must be non-negative")

    max_score = scores.max()
    if not np.isfinite(max_score) or max_score <= 0.0:
        raise DegenerateRelevance(f"Maximum relevance is {max_score}; cannot normalize")

    return scores / max_score


def compute_coefficients(
    relevance: Union[Mapping[str, float], pd.Series],
    lambda0: float,
    gamma: float
) -> pd.Series:
    """Mix baseline penalization with normalized relevance.

    Args:
        relevance: Raw (un-normalized) relevance per feature.
        lambda0: Baseline regularization in [0, 1).
        gamma: Mixing weight in [0, 1).

    Returns:
        Series of coefficients per feature.

    Raises:
        InvalidHyperparameter: If lambda0 or gamma is outside [0, 1).
        DegenerateRelevance: If relevance cannot be normalized.
    """
    if not 0.0 <= lambda0 < 1.0:
        raise InvalidHyperparameter(f"lambda0 must be in [0, 1), got {lambda0}")
    if not 0.0 <= gamma < 1.0:
        raise InvalidHyperparameter(f"gamma must be in [0, 1), got {gamma}")

    if gamma == 0.0:
        index = pd.Series(relevance, dtype=float).index
        return pd.Series(float(lambda0), index=index)

    normalized = normalize_relevance(relevance)
    return (1.0 - gamma) * lambda0 + gamma * normalized


def model_relevance(fitted: FittedModelRecord) -> pd.Series:
    """Raw relevance from a fitted model's importance scores.

    Args:
        fitted: An (unpenalized) fitted model record.

    Returns:
        Importance per feature, in the model's feature order.
    """
    return pd.Series(
        [fitted.importance.get(f, 0.0) for f in fitted.features],
        index=list(fitted.features),
        dtype=float,
    )


def default_n_bins(n_samples: int) -> int:
    """Equal-frequency bin count used for discretization: ceil(n ** (1/3))."""
    return max(2, int(math.ceil(n_samples ** (1.0 / 3.0))))


def discretize(values: pd.Series, n_bins: int) -> np.ndarray:
    """Equal-frequency discretization of one numeric feature.

    Ties at bin edges collapse bins, so constant features end up in a
    single bin.

    Args:
        values: Numeric feature values.
        n_bins: Target number of bins.

    Returns:
        Integer bin codes.
    """
    if values.nunique(dropna=False) <= 1:
        return np.zeros(len(values), dtype=int)
    codes = pd.qcut(values, q=n_bins, labels=False, duplicates='drop')
    return np.asarray(codes, dtype=int)


def mutual_information_relevance(
    X: pd.DataFrame,
    y: pd.Series,
    n_bins: Optional[int] = None
) -> pd.Series:
    """Raw relevance as mutual information with the label.

    Args:
        X: Feature DataFrame (training rows only).
        y: Labels aligned with X.
        n_bins: Bins per feature (default: ceil(n ** (1/3))).

    Returns:
        Mutual information (nats) per feature, in column order.
    """
    if n_bins is None:
        n_bins = default_n_bins(len(X))

    labels = np.asarray(y)
    scores: Dict[str, float] = {}
    for column in X.columns:
        if X[column].nunique(dropna=False) <= 1:
            scores[column] = 0.0
            continue
        codes = discretize(X[column], n_bins)
        scores[column] = max(0.0, float(mutual_info_score(labels, codes)))

    return pd.Series(scores, dtype=float)


def penalization_vector(
    relevance: Union[Mapping[str, float], pd.Series],
    combination: HyperparameterCombination,
    source: Optional[CoefficientSource] = None
) -> PenalizationVector:
    """Build the PenalizationVector for one sweep element.

    Args:
        relevance: Raw relevance per feature.
        combination: Hyperparameters providing lambda0 and gamma.
        source: Relevance source, recorded on the vector.

    Returns:
        PenalizationVector aligned with the relevance order.

    Raises:
        DegenerateRelevance: If relevance cannot be normalized.
    """
    coefficients = compute_coefficients(relevance, combination.lambda0, combination.gamma)
    return PenalizationVector(
        features=tuple(coefficients.index),
        coefficients=tuple(float(c) for c in coefficients.values),
        source=source,
        combination=combination,
    )


def constant_vector(
    features,
    combination: HyperparameterCombination,
    source: Optional[CoefficientSource] = None
) -> PenalizationVector:
    """Fallback vector with every coefficient equal to lambda0."""
    features = tuple(features)
    return PenalizationVector(
        features=features,
        coefficients=tuple(float(combination.lambda0) for _ in features),
        source=source,
        combination=combination,
        degenerate=True,
    )
