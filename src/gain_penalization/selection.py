"""Model selection and resampled re-evaluation.

Sweep records are ranked per fold by a composite key: higher test accuracy
first, then higher training accuracy, then fewer selected features. The
feature sets of the top-K records of every fold are then refit, unpenalized
and restricted to exactly those features, on every fold, so each candidate
feature set is judged across all resamples rather than the one it came from.
"""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from .config import ForestConfig
from .evaluation import fit_and_evaluate
from .exceptions import EmptyFeatureSet, InvalidHyperparameter
from .models import ForestTrainer, create_trainer
from .progress import NullProgressTracker, ProgressTracker
from .records import ElementFailure, EvaluationRecord, Fold

logger = logging.getLogger(__name__)


def ranking_key(record: EvaluationRecord) -> Tuple[float, float, int]:
    """Composite sort key: test accuracy desc, train accuracy desc, feature count asc."""
    return (-record.test_accuracy, -record.train_accuracy, record.n_features)


def rank_records(records: Sequence[EvaluationRecord]) -> List[EvaluationRecord]:
    """Order records best-first by ``ranking_key``.

    The sort is stable, so records with identical keys keep their input order.
    """
    return sorted(records, key=ranking_key)


def group_by_fold(records: Sequence[EvaluationRecord]) -> Dict[str, List[EvaluationRecord]]:
    """Group records by fold id, folds in sorted order."""
    groups: Dict[str, List[EvaluationRecord]] = {}
    for record in records:
        groups.setdefault(record.fold_id, []).append(record)
    return OrderedDict(sorted(groups.items()))


def select_top_per_fold(
    records: Sequence[EvaluationRecord],
    k: int = 3
) -> List[EvaluationRecord]:
    """Top-K records of every fold by ``ranking_key``.

    Args:
        records: Sweep evaluation records.
        k: Records kept per fold.

    Returns:
        Selected records, grouped by fold (fold order), best first within a fold.
    """
    if k < 1:
        raise ValueError("k must be at least 1")

    selected: List[EvaluationRecord] = []
    for fold_id, fold_records in group_by_fold(records).items():
        top = rank_records(fold_records)[:k]
        logger.debug(
            f"{fold_id}: selected "
            + ", ".join(f"{r.record_id} (acc={r.test_accuracy:.4f}, n={r.n_features})" for r in top)
        )
        selected.extend(top)
    return selected


@dataclass
class ReevaluationResult:
    """Output of the re-evaluation stage.

    Attributes:
        records: One record per (selected record, fold), sorted by id.
        failures: Selected records that could not be refit.
    """
    records: List[EvaluationRecord] = field(default_factory=list)
    failures: List[ElementFailure] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)


def reevaluate_feature_set(
    origin: EvaluationRecord,
    X: pd.DataFrame,
    y: pd.Series,
    folds: Sequence[Fold],
    trainer: ForestTrainer,
    fraction: Optional[float] = None
) -> List[EvaluationRecord]:
    """Refit an unpenalized forest on ``origin``'s feature set, on every fold.

    Args:
        origin: Selected sweep record.
        X: Full feature DataFrame.
        y: Full target Series.
        folds: All folds.
        trainer: Forest trainer.
        fraction: Split-candidate fraction (None = sqrt rule).

    Returns:
        One EvaluationRecord per fold.

    Raises:
        EmptyFeatureSet: If ``origin`` selected no features.
    """
    if not origin.features:
        raise EmptyFeatureSet(f"{origin.record_id} selected no features")

    return [
        fit_and_evaluate(
            trainer, X, y, fold,
            record_id=f"{origin.record_id}@{fold.fold_id}",
            features=origin.features,
            fraction=fraction,
            origin_id=origin.record_id,
        )
        for fold in folds
    ]


def _reevaluate_element(origin, X, y, folds, forest_config, fraction, trainer):
    start = time.time()
    trainer = trainer or create_trainer(forest_config)
    try:
        records = reevaluate_feature_set(origin, X, y, folds, trainer, fraction)
    except (EmptyFeatureSet, InvalidHyperparameter) as e:
        logger.warning(f"{origin.record_id}: re-evaluation skipped ({e})")
        return ElementFailure(origin.record_id, 'reevaluation', str(e)), time.time() - start
    return records, time.time() - start


def reevaluate(
    selected: Sequence[EvaluationRecord],
    X: pd.DataFrame,
    y: pd.Series,
    folds: Sequence[Fold],
    forest_config: Optional[ForestConfig] = None,
    fraction: Optional[float] = None,
    n_jobs: int = 1,
    trainer: Optional[ForestTrainer] = None,
    progress: Optional[ProgressTracker] = None
) -> ReevaluationResult:
    """Re-evaluate every selected feature set on every fold.

    Args:
        selected: Records chosen by ``select_top_per_fold``.
        X: Feature DataFrame.
        y: Target Series.
        folds: All folds.
        forest_config: Engine configuration.
        fraction: Split-candidate fraction for refits (None = sqrt rule).
        n_jobs: Parallel workers (1 = sequential).
        trainer: Optional trainer override.
        progress: Optional progress tracker.

    Returns:
        ReevaluationResult with len(selected) * len(folds) records when
        nothing is skipped.
    """
    forest_config = forest_config or ForestConfig()
    progress = progress or NullProgressTracker()

    logger.info(f"Re-evaluation: {len(selected)} feature sets x {len(folds)} folds")
    progress.start_stage('reevaluation', total=len(selected))

    if n_jobs != 1 and len(selected) > 1:
        from joblib import Parallel, delayed

        outcomes = Parallel(n_jobs=n_jobs, backend='loky', verbose=0)(
            delayed(_reevaluate_element)(origin, X, y, folds, forest_config, fraction, trainer)
            for origin in selected
        )
    else:
        outcomes = (
            _reevaluate_element(origin, X, y, folds, forest_config, fraction, trainer)
            for origin in selected
        )

    result = ReevaluationResult()
    for outcome, elapsed in outcomes:
        if isinstance(outcome, ElementFailure):
            result.failures.append(outcome)
            progress.update(fit_time=elapsed, failed=True)
        else:
            result.records.extend(outcome)
            progress.update(
                test_accuracy=max(r.test_accuracy for r in outcome),
                fit_time=elapsed,
            )

    progress.end_stage()
    result.records.sort(key=lambda r: r.record_id)
    logger.info(
        f"Re-evaluation complete: {len(result.records)} records, "
        f"{len(result.failures)} skipped"
    )
    return result
