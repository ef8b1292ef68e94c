"""Hyperparameter sweep over penalized forests.

For every fold, every (fraction, lambda0, gamma) combination and every
relevance source, the sweep computes a penalization vector, fits a
gain-penalized forest on the fold's training rows and scores it on the
fold's test rows. Elements are independent of each other: they can run
sequentially or in joblib workers, and the output is sorted by record id so
it does not depend on execution order.
"""

import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union
import pandas as pd

from .coefficients import (
    constant_vector, model_relevance, mutual_information_relevance,
    penalization_vector,
)
from .config import CoefficientSource, ForestConfig
from .evaluation import fit_and_evaluate, split_fold
from .exceptions import DegenerateRelevance, InvalidHyperparameter
from .models import ForestTrainer, create_trainer
from .progress import NullProgressTracker, ProgressTracker
from .records import (
    ElementFailure, EvaluationRecord, Fold, HyperparameterCombination,
    PenalizationVector,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepTask:
    """One (fold, combination, source) element of the sweep."""
    fold: Fold
    combination: HyperparameterCombination
    source: CoefficientSource
    relevance: pd.Series = field(repr=False, compare=False)

    @property
    def element_id(self) -> str:
        return f"{self.fold.fold_id}/{self.source.value}/{self.combination.label}"


@dataclass
class SweepResult:
    """Output of a sweep.

    Attributes:
        records: One EvaluationRecord per successful element, sorted by id.
        failures: Elements that were skipped, with the reason.
        degenerate: Ids of elements whose relevance collapsed to lambda0.
    """
    records: List[EvaluationRecord] = field(default_factory=list)
    failures: List[ElementFailure] = field(default_factory=list)
    degenerate: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)


def enumerate_combinations(
    fractions: Sequence[float],
    lambda0s: Sequence[float],
    gammas: Sequence[float]
) -> List[HyperparameterCombination]:
    """Cross product of the grid, in (fraction, lambda0, gamma) order.

    Raises:
        InvalidHyperparameter: If a lambda0 or gamma is outside [0, 1).
    """
    return [
        HyperparameterCombination(fraction=float(f), lambda0=float(l0), gamma=float(g))
        for f, l0, g in itertools.product(fractions, lambda0s, gammas)
    ]


def compute_fold_relevance(
    X: pd.DataFrame,
    y: pd.Series,
    fold: Fold,
    source: CoefficientSource,
    trainer: ForestTrainer
) -> pd.Series:
    """Raw relevance of every feature, computed on the fold's training rows.

    Args:
        X: Full feature DataFrame.
        y: Full target Series.
        fold: Fold whose training rows are used.
        source: MODEL fits an unpenalized forest and uses its importance;
            MUTUAL_INFORMATION uses MI between discretized features and y.
        trainer: Forest trainer (MODEL source only).

    Returns:
        Raw relevance per feature, in column order.
    """
    X_train, y_train, _, _ = split_fold(X, y, fold)
    if source == CoefficientSource.MODEL:
        fitted = trainer.fit(X_train, y_train, fraction=None, fold_id=fold.fold_id)
        return model_relevance(fitted)
    return mutual_information_relevance(X_train, y_train)


def build_penalization(task: SweepTask) -> Tuple[PenalizationVector, bool]:
    """Penalization vector for one task, falling back to constant lambda0.

    Returns:
        Tuple of (vector, degenerate flag).
    """
    try:
        return penalization_vector(task.relevance, task.combination, task.source), False
    except DegenerateRelevance as e:
        logger.warning(
            f"{task.element_id}: degenerate relevance ({e}); "
            f"using constant lambda0={task.combination.lambda0}"
        )
        return constant_vector(task.relevance.index, task.combination, task.source), True


def run_sweep_element(
    task: SweepTask,
    X: pd.DataFrame,
    y: pd.Series,
    forest_config: ForestConfig,
    trainer: Optional[ForestTrainer] = None
) -> Tuple[Union[EvaluationRecord, ElementFailure], bool, float]:
    """Fit and evaluate one sweep element.

    Args:
        task: The element to run.
        X: Full feature DataFrame.
        y: Full target Series.
        forest_config: Engine configuration.
        trainer: Optional trainer (default: built from forest_config).

    Returns:
        Tuple of (record or failure, degenerate flag, elapsed seconds).
    """
    start = time.time()
    trainer = trainer or create_trainer(forest_config)

    penalization, degenerate = build_penalization(task)
    try:
        record = fit_and_evaluate(
            trainer, X, y, task.fold,
            record_id=task.element_id,
            fraction=task.combination.fraction,
            penalization=penalization,
            combination=task.combination,
            source=task.source,
        )
    except InvalidHyperparameter as e:
        logger.warning(f"{task.element_id}: skipped ({e})")
        return ElementFailure(task.element_id, 'sweep', str(e)), degenerate, time.time() - start

    return record, degenerate, time.time() - start


def run_sweep(
    X: pd.DataFrame,
    y: pd.Series,
    folds: Sequence[Fold],
    combinations: Sequence[HyperparameterCombination],
    sources: Sequence[CoefficientSource] = (CoefficientSource.MODEL, CoefficientSource.MUTUAL_INFORMATION),
    forest_config: Optional[ForestConfig] = None,
    n_jobs: int = 1,
    trainer: Optional[ForestTrainer] = None,
    progress: Optional[ProgressTracker] = None
) -> SweepResult:
    """Run the penalized-forest sweep.

    Args:
        X: Feature DataFrame.
        y: Binary target Series aligned with X.
        folds: Cross-validation folds.
        combinations: Hyperparameter combinations.
        sources: Relevance sources to sweep over.
        forest_config: Engine configuration.
        n_jobs: Parallel workers (1 = sequential).
        trainer: Optional trainer override (must be picklable when n_jobs != 1).
        progress: Optional progress tracker.

    Returns:
        SweepResult with one record per (fold, combination, source) that
        could be fit.
    """
    forest_config = forest_config or ForestConfig()
    trainer = trainer or create_trainer(forest_config)
    progress = progress or NullProgressTracker()
    sources = [CoefficientSource(s) for s in sources]

    logger.info(
        f"Sweep: {len(folds)} folds x {len(combinations)} combinations x "
        f"{len(sources)} sources = {len(folds) * len(combinations) * len(sources)} fits"
    )

    tasks: List[SweepTask] = []
    for fold in folds:
        for source in sources:
            relevance = compute_fold_relevance(X, y, fold, source, trainer)
            for combination in combinations:
                tasks.append(SweepTask(fold, combination, source, relevance))

    result = SweepResult()
    progress.start_stage('sweep', total=len(tasks))

    if n_jobs != 1 and len(tasks) > 1:
        from joblib import Parallel, delayed

        outcomes = Parallel(n_jobs=n_jobs, backend='loky', verbose=0)(
            delayed(run_sweep_element)(task, X, y, forest_config, trainer)
            for task in tasks
        )
    else:
        outcomes = (run_sweep_element(task, X, y, forest_config, trainer) for task in tasks)

    for task, (outcome, degenerate, elapsed) in zip(tasks, outcomes):
        if degenerate:
            result.degenerate.append(task.element_id)
        if isinstance(outcome, ElementFailure):
            result.failures.append(outcome)
            progress.update(fit_time=elapsed, failed=True)
        else:
            result.records.append(outcome)
            progress.update(test_accuracy=outcome.test_accuracy, fit_time=elapsed)

    progress.end_stage()

    result.records.sort(key=lambda r: r.record_id)
    result.failures.sort(key=lambda f: f.element_id)
    result.degenerate.sort()

    logger.info(
        f"Sweep complete: {len(result.records)} records, {len(result.failures)} skipped, "
        f"{len(result.degenerate)} degenerate"
    )
    return result
