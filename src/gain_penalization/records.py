"""Typed records for every intermediate result of the pipeline.

Records are frozen dataclasses: once a fold, penalization vector, fitted
model or evaluation exists it is never mutated. ``records_to_frame`` turns a
list of evaluation records into a tidy DataFrame for reporting.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple
import numpy as np
import pandas as pd

from .config import CoefficientSource
from .exceptions import InvalidHyperparameter


@dataclass(frozen=True)
class Fold:
    """One train/test partition of the dataset.

    Attributes:
        fold_id: Identifier such as "Fold01".
        train_index: Positional row indices of the training subset.
        test_index: Positional row indices of the test subset.
    """
    fold_id: str
    train_index: np.ndarray = field(repr=False, compare=False)
    test_index: np.ndarray = field(repr=False, compare=False)

    @property
    def n_train(self) -> int:
        return len(self.train_index)

    @property
    def n_test(self) -> int:
        return len(self.test_index)


@dataclass(frozen=True)
class HyperparameterCombination:
    """A (fraction, lambda0, gamma) point of the sweep grid.

    lambda0 and gamma are checked here; the fraction is checked by the
    trainer, which knows how many features are available.
    """
    fraction: float
    lambda0: float
    gamma: float

    def __post_init__(self):
        if not 0.0 <= self.lambda0 < 1.0:
            raise InvalidHyperparameter(f"lambda0 must be in [0, 1), got {self.lambda0}")
        if not 0.0 <= self.gamma < 1.0:
            raise InvalidHyperparameter(f"gamma must be in [0, 1), got {self.gamma}")

    @property
    def label(self) -> str:
        return f"f={self.fraction:g},l0={self.lambda0:g},g={self.gamma:g}"


@dataclass(frozen=True)
class PenalizationVector:
    """Per-feature gain penalization coefficients.

    Attributes:
        features: Feature names, in column order.
        coefficients: Coefficient per feature, aligned with ``features``.
        source: Relevance source the coefficients were derived from.
        combination: Hyperparameters used to mix relevance with lambda0.
        degenerate: True when relevance was unusable and every coefficient
            fell back to lambda0.
    """
    features: Tuple[str, ...]
    coefficients: Tuple[float, ...]
    source: Optional[CoefficientSource] = None
    combination: Optional[HyperparameterCombination] = None
    degenerate: bool = False

    def __post_init__(self):
        if len(self.features) != len(self.coefficients):
            raise ValueError("features and coefficients must have the same length")

    def as_dict(self) -> Dict[str, float]:
        return dict(zip(self.features, self.coefficients))

    def for_features(self, features: Sequence[str]) -> List[float]:
        """Coefficients in the order of ``features``."""
        lookup = self.as_dict()
        return [lookup[f] for f in features]


@dataclass(frozen=True)
class FittedModelRecord:
    """Result of one training call.

    Attributes:
        fold_id: Fold the model was trained on.
        features: Features the model was allowed to use.
        importance: Gain importance per feature (0 = never used for a split).
        train_error: In-sample misclassification rate.
        mtry: Features considered per split.
        penalization: Coefficients applied during training (None = unpenalized).
        model: The fitted model (not part of equality or repr).
    """
    fold_id: str
    features: Tuple[str, ...]
    importance: Dict[str, float] = field(compare=False)
    train_error: float
    mtry: int
    penalization: Optional[PenalizationVector] = None
    model: Any = field(default=None, repr=False, compare=False)

    @property
    def selected_features(self) -> Tuple[str, ...]:
        """Features with nonzero importance, in column order."""
        return tuple(f for f in self.features if self.importance.get(f, 0.0) > 0.0)


@dataclass(frozen=True)
class EvaluationRecord:
    """Held-out evaluation of a fitted model, used for ranking.

    Attributes:
        record_id: Unique identifier of the evaluation.
        fold_id: Fold whose test subset was scored.
        test_accuracy: Accuracy on the fold's test rows.
        train_accuracy: Accuracy on the fold's training rows.
        n_features: Number of features with nonzero importance.
        features: Those features, in column order.
        combination: Sweep hyperparameters (sweep records only).
        source: Relevance source (sweep records only).
        origin_id: Sweep record whose feature set was refit (re-evaluation only).
    """
    record_id: str
    fold_id: str
    test_accuracy: float
    train_accuracy: float
    n_features: int
    features: Tuple[str, ...]
    combination: Optional[HyperparameterCombination] = None
    source: Optional[CoefficientSource] = None
    origin_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        row = {
            'record_id': self.record_id,
            'fold_id': self.fold_id,
            'test_accuracy': self.test_accuracy,
            'train_accuracy': self.train_accuracy,
            'n_features': self.n_features,
            'features': ";".join(self.features),
            'source': self.source.value if self.source is not None else None,
            'fraction': None,
            'lambda0': None,
            'gamma': None,
            'origin_id': self.origin_id,
        }
        if self.combination is not None:
            row['fraction'] = self.combination.fraction
            row['lambda0'] = self.combination.lambda0
            row['gamma'] = self.combination.gamma
        return row


@dataclass(frozen=True)
class SelectedFeatureSet:
    """Final feature set chosen by occurrence counting.

    Attributes:
        features: Feature names, most frequent first.
        counts: Occurrence count per feature, aligned with ``features``.
        n_records: Number of records whose feature sets were tallied.
    """
    features: Tuple[str, ...]
    counts: Tuple[int, ...]
    n_records: int

    def __len__(self) -> int:
        return len(self.features)


@dataclass(frozen=True)
class ElementFailure:
    """A sweep or re-evaluation element that was skipped."""
    element_id: str
    stage: str
    error: str


def records_to_frame(records: Sequence[EvaluationRecord]) -> pd.DataFrame:
    """Convert evaluation records to a DataFrame, one row per record."""
    columns = [
        'record_id', 'fold_id', 'test_accuracy', 'train_accuracy', 'n_features',
        'features', 'source', 'fraction', 'lambda0', 'gamma', 'origin_id',
    ]
    return pd.DataFrame([r.to_dict() for r in records], columns=columns)
