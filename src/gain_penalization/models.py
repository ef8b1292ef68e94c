"""Random forest wrapper with per-feature gain penalization.

Trees are grown by LightGBM in random forest mode (``boosting='rf'``): every
tree is fit on a row subsample and every split considers a random subset of
``mtry`` features. Gain penalization uses LightGBM's ``feature_contri``
parameter (alias ``feature_penalty``), which multiplies each candidate
feature's split gain by its coefficient before candidates are compared and
before the best gain is checked against the no-split baseline. Features that
never win a split keep an importance of zero.
"""

import logging
import math
from typing import Dict, List, Optional, Protocol, Union
import numpy as np
import pandas as pd
import lightgbm as lgb

from .config import ForestConfig
from .exceptions import InvalidHyperparameter
from .records import FittedModelRecord, PenalizationVector

logger = logging.getLogger(__name__)


def resolve_mtry(n_features: int, fraction: Optional[float]) -> int:
    """Number of features considered per split.

    Args:
        n_features: Number of available features.
        fraction: Fraction of features per split; None uses floor(sqrt(p)).

    Returns:
        mtry, at least 1.

    Raises:
        InvalidHyperparameter: If the fraction is out of range or leaves
            fewer than one feature per split.
    """
    if n_features < 1:
        raise InvalidHyperparameter("At least one feature is required to grow trees")

    if fraction is None:
        return max(1, int(math.floor(math.sqrt(n_features))))

    if not 0.0 < fraction <= 1.0:
        raise InvalidHyperparameter(f"fraction must be in (0, 1], got {fraction}")

    mtry = int(math.floor(fraction * n_features + 1e-9))
    if mtry < 1:
        raise InvalidHyperparameter(
            f"fraction={fraction} leaves {mtry} of {n_features} features per split"
        )
    return mtry


class ForestTrainer(Protocol):
    """Anything that can fit a (possibly penalized) forest on one subset."""

    def fit(
        self,
        X_train: pd.DataFrame,
        y_train: pd.Series,
        fraction: Optional[float] = None,
        penalization: Optional[PenalizationVector] = None,
        fold_id: str = ""
    ) -> FittedModelRecord:
        ...


class PenalizedForest:
    """Binary random forest classifier with optional gain penalization.

    Attributes:
        config: ForestConfig with engine settings.
        model: The trained LightGBM booster (None before training).
        feature_names: Feature names used for training.
        classes_: The two class labels, negative class first.
        mtry_: Features considered per split in the last fit.
    """

    def __init__(self, config: ForestConfig):
        """Initialize the wrapper.

        Args:
            config: ForestConfig specifying engine parameters.
        """
        self.config = config
        self.model: Optional[lgb.Booster] = None
        self.feature_names: List[str] = []
        self.classes_: Optional[np.ndarray] = None
        self.mtry_: int = 0

    def train(
        self,
        X_train: pd.DataFrame,
        y_train: Union[pd.Series, np.ndarray],
        fraction: Optional[float] = None,
        penalization: Optional[PenalizationVector] = None
    ) -> 'PenalizedForest':
        """Grow the forest.

        Args:
            X_train: Training features.
            y_train: Binary training labels.
            fraction: Fraction of features considered at each split
                (None = floor(sqrt(p)) features).
            penalization: Per-feature gain coefficients; None means every
                coefficient is 1.

        Returns:
            self for chaining.
        """
        self.feature_names = list(X_train.columns)
        n_features = len(self.feature_names)
        self.mtry_ = resolve_mtry(n_features, fraction)

        y_encoded = self._encode_labels(y_train)

        params = self.config.get_model_params()
        params['feature_fraction_bynode'] = min(1.0, self.mtry_ / n_features)
        if penalization is not None:
            params['feature_contri'] = penalization.for_features(self.feature_names)

        train_data = lgb.Dataset(
            X_train.values.astype(float),
            label=y_encoded,
            feature_name=self.feature_names,
            free_raw_data=True,
            params={'verbose': -1},
        )

        self.model = lgb.train(
            params,
            train_data,
            num_boost_round=self.config.num_trees,
        )
        return self

    def _encode_labels(self, y: Union[pd.Series, np.ndarray]) -> np.ndarray:
        """Map the two class labels to 0/1, keeping the class values in classes_."""
        values = np.asarray(y)
        classes = np.unique(values)
        if len(classes) > 2:
            raise ValueError(f"Binary target expected, got {len(classes)} classes")
        self.classes_ = classes
        if len(classes) == 1:
            return np.zeros(len(values), dtype=float)
        return (values == self.classes_[1]).astype(float)

    def predict_proba(self, X: pd.DataFrame) -> np.ndarray:
        """Probability of the positive class (second entry of ``classes_``)."""
        if self.model is None:
            raise ValueError("Model not trained yet")
        X_arr = X[self.feature_names].values.astype(float)
        return self.model.predict(X_arr)

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        """Predicted class labels."""
        proba = self.predict_proba(X)
        if len(self.classes_) == 1:
            return np.full(len(proba), self.classes_[0])
        return np.where(proba > 0.5, self.classes_[1], self.classes_[0])

    def get_feature_importance(self, importance_type: str = 'gain') -> Dict[str, float]:
        """Get feature importance scores.

        Args:
            importance_type: 'gain' (total split gain) or 'split' (split count).

        Returns:
            Dict mapping feature name to importance score.
        """
        if self.model is None:
            raise ValueError("Model not trained yet")
        importance = self.model.feature_importance(importance_type=importance_type)
        return {f: float(v) for f, v in zip(self.feature_names, importance)}


class LightGBMForestTrainer:
    """ForestTrainer backed by ``PenalizedForest``."""

    def __init__(self, config: ForestConfig):
        self.config = config

    def fit(
        self,
        X_train: pd.DataFrame,
        y_train: pd.Series,
        fraction: Optional[float] = None,
        penalization: Optional[PenalizationVector] = None,
        fold_id: str = ""
    ) -> FittedModelRecord:
        """Fit one forest and package it as a FittedModelRecord.

        Raises:
            InvalidHyperparameter: If ``fraction`` yields fewer than one
                feature per split.
        """
        forest = PenalizedForest(self.config)
        forest.train(X_train, y_train, fraction=fraction, penalization=penalization)

        train_pred = forest.predict(X_train)
        train_error = float(np.mean(train_pred != np.asarray(y_train)))
        importance = forest.get_feature_importance('gain')

        logger.debug(
            f"{fold_id or 'fit'}: mtry={forest.mtry_}, "
            f"{sum(v > 0 for v in importance.values())}/{len(importance)} features used, "
            f"train_error={train_error:.4f}"
        )

        return FittedModelRecord(
            fold_id=fold_id,
            features=tuple(forest.feature_names),
            importance=importance,
            train_error=train_error,
            mtry=forest.mtry_,
            penalization=penalization,
            model=forest,
        )


def create_trainer(config: ForestConfig) -> ForestTrainer:
    """Factory function to create the default forest trainer.

    Args:
        config: Forest configuration.

    Returns:
        LightGBMForestTrainer instance.
    """
    return LightGBMForestTrainer(config)
