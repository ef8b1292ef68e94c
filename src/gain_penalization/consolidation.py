"""Final consolidation of the selected feature set.

The best re-evaluated models vote for their features: occurrences are
counted across the top-M feature sets and the F most frequent features form
the final set. That set is then judged on a fresh, larger cross-validation
split with one unpenalized forest per fold.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .config import ForestConfig
from .cv import make_folds
from .evaluation import fit_and_evaluate
from .exceptions import InsufficientFeatures
from .metrics import summarize_accuracies
from .models import ForestTrainer, create_trainer
from .progress import NullProgressTracker, ProgressTracker
from .records import EvaluationRecord, SelectedFeatureSet, records_to_frame
from .selection import rank_records

logger = logging.getLogger(__name__)


def tally_features(records: Sequence[EvaluationRecord]) -> Counter:
    """Count how many records use each feature.

    Features are kept in the order they are first encountered, which is the
    tie-break used when counts are equal.
    """
    counts: Counter = Counter()
    for record in records:
        for feature in record.features:
            counts[feature] += 1
    return counts


def select_final_features(
    records: Sequence[EvaluationRecord],
    top_m: int = 30,
    n_features: int = 15
) -> SelectedFeatureSet:
    """Pick the most frequent features among the top-M records.

    Args:
        records: Re-evaluation records.
        top_m: Records (best first by ranking key) whose feature sets are tallied.
        n_features: Size of the final feature set.

    Returns:
        SelectedFeatureSet, most frequent first.

    Raises:
        InsufficientFeatures: If fewer than ``n_features`` features occur at
            all in the top-M records.
    """
    top = rank_records(records)[:top_m]
    counts = tally_features(top)

    # sorted() is stable, so equal counts keep first-encountered order
    ordered = sorted(counts.items(), key=lambda item: -item[1])
    ordered = [(f, c) for f, c in ordered if c > 0]

    if len(ordered) < n_features:
        raise InsufficientFeatures(requested=n_features, available=len(ordered))

    chosen = ordered[:n_features]
    logger.info(
        f"Final feature set ({n_features} of {len(ordered)} candidates from "
        f"{len(top)} records): {[f for f, _ in chosen]}"
    )
    return SelectedFeatureSet(
        features=tuple(f for f, _ in chosen),
        counts=tuple(c for _, c in chosen),
        n_records=len(top),
    )


@dataclass
class ConsolidationResult:
    """Evaluation of the final feature set.

    Attributes:
        feature_set: The final feature set.
        records: One EvaluationRecord per fold of the final split.
        test_summary: mean/median/std/min/max of test accuracy.
        train_summary: mean/median/std/min/max of training accuracy.
    """
    feature_set: SelectedFeatureSet
    records: List[EvaluationRecord] = field(default_factory=list)
    test_summary: Dict[str, float] = field(default_factory=dict)
    train_summary: Dict[str, float] = field(default_factory=dict)

    @property
    def mean_test_accuracy(self) -> float:
        return self.test_summary['mean']

    @property
    def median_test_accuracy(self) -> float:
        return self.test_summary['median']

    @property
    def mean_train_accuracy(self) -> float:
        return self.train_summary['mean']

    @property
    def median_train_accuracy(self) -> float:
        return self.train_summary['median']

    def to_frame(self) -> pd.DataFrame:
        return records_to_frame(self.records)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'features': list(self.feature_set.features),
            'counts': list(self.feature_set.counts),
            'n_folds': len(self.records),
            'test_accuracy': self.test_summary,
            'train_accuracy': self.train_summary,
        }


def consolidate(
    X: pd.DataFrame,
    y: pd.Series,
    feature_set: SelectedFeatureSet,
    n_splits: int = 20,
    random_state: int = 2024,
    forest_config: Optional[ForestConfig] = None,
    fraction: Optional[float] = None,
    stratify: bool = False,
    trainer: Optional[ForestTrainer] = None,
    progress: Optional[ProgressTracker] = None
) -> ConsolidationResult:
    """Evaluate the final feature set on a fresh ``n_splits``-fold split.

    Args:
        X: Feature DataFrame.
        y: Target Series.
        feature_set: Final features.
        n_splits: Folds in the fresh split.
        random_state: Seed for the fresh split.
        forest_config: Engine configuration.
        fraction: Split-candidate fraction (None = sqrt rule).
        stratify: Stratify the fresh split by class.
        trainer: Optional trainer override.
        progress: Optional progress tracker.

    Returns:
        ConsolidationResult with per-fold records and accuracy summaries.
    """
    forest_config = forest_config or ForestConfig()
    trainer = trainer or create_trainer(forest_config)
    progress = progress or NullProgressTracker()

    folds = make_folds(X, y, n_splits=n_splits, random_state=random_state, stratify=stratify)
    progress.start_stage('consolidation', total=len(folds))

    records = []
    for fold in folds:
        record = fit_and_evaluate(
            trainer, X, y, fold,
            record_id=f"final@{fold.fold_id}",
            features=feature_set.features,
            fraction=fraction,
        )
        records.append(record)
        progress.update(test_accuracy=record.test_accuracy)

    progress.end_stage()

    result = ConsolidationResult(
        feature_set=feature_set,
        records=records,
        test_summary=summarize_accuracies([r.test_accuracy for r in records]),
        train_summary=summarize_accuracies([r.train_accuracy for r in records]),
    )
    logger.info(
        f"Final model over {n_splits} folds: test acc mean={result.mean_test_accuracy:.4f} "
        f"median={result.median_test_accuracy:.4f}; train acc mean={result.mean_train_accuracy:.4f}"
    )
    return result
