"""Core evaluation primitive: fit on a fold, score on its held-out rows.

Every stage of the pipeline (sweep, re-evaluation, consolidation) reduces to
``fit_and_evaluate``: train one forest on a fold's training rows, restricted
to a feature subset and optionally penalized, then score it on the fold's
test rows.
"""

import logging
from typing import Optional, Sequence
import numpy as np
import pandas as pd

from .config import CoefficientSource
from .metrics import compute_accuracy, count_selected_features
from .models import ForestTrainer
from .records import (
    EvaluationRecord, FittedModelRecord, Fold, HyperparameterCombination,
    PenalizationVector,
)

logger = logging.getLogger(__name__)


def split_fold(
    X: pd.DataFrame,
    y: pd.Series,
    fold: Fold,
    features: Optional[Sequence[str]] = None
):
    """Slice a fold's training and test rows.

    Args:
        X: Full feature DataFrame.
        y: Full target Series.
        fold: Fold record.
        features: Optional column subset (default: all columns).

    Returns:
        Tuple of (X_train, y_train, X_test, y_test).
    """
    columns = list(X.columns) if features is None else list(features)
    col_indices = [X.columns.get_loc(c) for c in columns]
    X_train = X.iloc[fold.train_index, col_indices]
    X_test = X.iloc[fold.test_index, col_indices]
    y_train = y.iloc[fold.train_index]
    y_test = y.iloc[fold.test_index]
    return X_train, y_train, X_test, y_test


def evaluate_fit(
    fitted: FittedModelRecord,
    X_test: pd.DataFrame,
    y_test: pd.Series,
    record_id: str,
    combination: Optional[HyperparameterCombination] = None,
    source: Optional[CoefficientSource] = None,
    origin_id: Optional[str] = None
) -> EvaluationRecord:
    """Score a fitted model on its paired test rows.

    Args:
        fitted: Model trained on the fold's training rows.
        X_test: Test features.
        y_test: Test labels.
        record_id: Identifier for the resulting record.
        combination: Sweep hyperparameters, if any.
        source: Relevance source, if any.
        origin_id: Originating sweep record, for re-evaluations.

    Returns:
        EvaluationRecord with test/train accuracy and selected features.
    """
    y_pred = fitted.model.predict(X_test)
    selected = fitted.selected_features
    return EvaluationRecord(
        record_id=record_id,
        fold_id=fitted.fold_id,
        test_accuracy=compute_accuracy(np.asarray(y_test), y_pred),
        train_accuracy=1.0 - fitted.train_error,
        n_features=count_selected_features(fitted.importance),
        features=selected,
        combination=combination,
        source=source,
        origin_id=origin_id,
    )


def fit_and_evaluate(
    trainer: ForestTrainer,
    X: pd.DataFrame,
    y: pd.Series,
    fold: Fold,
    record_id: str,
    features: Optional[Sequence[str]] = None,
    fraction: Optional[float] = None,
    penalization: Optional[PenalizationVector] = None,
    combination: Optional[HyperparameterCombination] = None,
    source: Optional[CoefficientSource] = None,
    origin_id: Optional[str] = None
) -> EvaluationRecord:
    """Train on a fold's training rows and evaluate on its test rows.

    Args:
        trainer: Forest trainer.
        X: Full feature DataFrame.
        y: Full target Series.
        fold: Fold to train/test on.
        record_id: Identifier for the resulting record.
        features: Column subset to train on (default: all columns).
        fraction: Fraction of features per split (None = sqrt rule).
        penalization: Gain coefficients (None = unpenalized).
        combination: Sweep hyperparameters, recorded on the result.
        source: Relevance source, recorded on the result.
        origin_id: Originating record, recorded on the result.

    Returns:
        EvaluationRecord for this fit.
    """
    X_train, y_train, X_test, y_test = split_fold(X, y, fold, features)
    fitted = trainer.fit(
        X_train, y_train,
        fraction=fraction,
        penalization=penalization,
        fold_id=fold.fold_id,
    )
    record = evaluate_fit(
        fitted, X_test, y_test, record_id,
        combination=combination, source=source, origin_id=origin_id,
    )
    logger.debug(
        f"{record_id}: test_acc={record.test_accuracy:.4f}, "
        f"train_acc={record.train_accuracy:.4f}, n_features={record.n_features}"
    )
    return record
