"""
Gain-penalization feature selection pipeline.

Pipeline Structure:
1. Partition the data into seeded v-fold splits
2. Sweep: penalized forests for every (fold, fraction, lambda0, gamma, source)
3. Select the top-K sweep records of every fold
4. Re-evaluate each selected feature set, unpenalized, on every fold
5. Tally features over the top-M re-evaluations and keep the F most frequent
6. Evaluate the final feature set on a fresh, larger split

Checkpointing:
- Saves state after the sweep and the re-evaluation to
  <output_dir>/checkpoint.pkl when checkpointing is enabled
- Resume with: pipeline.run(X, y, resume=True)
"""

import logging
import pickle
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from .config import PipelineConfig
from .consolidation import ConsolidationResult, consolidate, select_final_features
from .cv import RandomKFold
from .data import validate_dataset
from .display import ResultsDisplay, summarize_sweep
from .exceptions import InsufficientFeatures
from .models import ForestTrainer, create_trainer
from .progress import create_progress_tracker
from .records import ElementFailure, EvaluationRecord, Fold, SelectedFeatureSet
from .selection import ReevaluationResult, reevaluate, select_top_per_fold
from .sweep import SweepResult, enumerate_combinations, run_sweep

logger = logging.getLogger(__name__)


class GainPenalizationPipeline:
    """
    Three-stage feature selection with gain-penalized random forests.

    1. Penalized-forest sweep over the hyperparameter grid on every fold
    2. Resampled re-evaluation of the best feature sets on every fold
    3. Consolidation into one fixed-size feature set, evaluated on a fresh split
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        trainer: Optional[ForestTrainer] = None,
        checkpoint: bool = False,
    ):
        """Initialize the pipeline.

        Args:
            config: Pipeline configuration.
            trainer: Forest trainer override (default: LightGBM random forest).
            checkpoint: Save state after each expensive stage to
                <output_dir>/checkpoint.pkl.
        """
        self.config = config or PipelineConfig()
        self.trainer = trainer or create_trainer(self.config.forest)
        self.checkpoint = checkpoint
        self._checkpoint_file = Path(self.config.output_dir) / 'checkpoint.pkl'

        # Results (set during run)
        self.folds_: List[Fold] = []
        self.sweep_result_: Optional[SweepResult] = None
        self.selected_: List[EvaluationRecord] = []
        self.reevaluation_result_: Optional[ReevaluationResult] = None
        self.final_features_: Optional[SelectedFeatureSet] = None
        self.consolidation_: Optional[ConsolidationResult] = None
        self._completed_stages: List[str] = []

    def _save_checkpoint(self, stage: str):
        """Save completed-stage results."""
        self._checkpoint_file.parent.mkdir(parents=True, exist_ok=True)

        state = {
            'stage': stage,
            'completed_stages': self._completed_stages.copy(),
            'sweep_result': self.sweep_result_,
            'selected': self.selected_,
            'reevaluation_result': self.reevaluation_result_,
            'config': self.config,
            'timestamp': time.time(),
        }

        # Save to temp file first, then rename (atomic)
        temp_file = self._checkpoint_file.with_suffix('.tmp')
        with open(temp_file, 'wb') as f:
            pickle.dump(state, f)
        temp_file.replace(self._checkpoint_file)

        logger.info(f"Checkpoint saved: stage={stage}")

    def load_checkpoint(self) -> Optional[Dict[str, Any]]:
        """Load the checkpoint for this pipeline's output directory, if any."""
        if not self._checkpoint_file.exists():
            return None
        with open(self._checkpoint_file, 'rb') as f:
            return pickle.load(f)

    def _restore(self, state: Dict[str, Any]):
        if state.get('config') != self.config:
            logger.warning("Checkpoint was written with a different config; ignoring it")
            return
        self._completed_stages = list(state['completed_stages'])
        self.sweep_result_ = state['sweep_result']
        self.selected_ = state['selected']
        self.reevaluation_result_ = state['reevaluation_result']
        logger.info(f"Resumed from checkpoint after stages: {self._completed_stages}")

    def run(
        self,
        X: pd.DataFrame,
        y: pd.Series,
        verbose: bool = True,
        resume: bool = False,
    ) -> 'GainPenalizationPipeline':
        """Run the complete pipeline.

        Args:
            X: Feature DataFrame.
            y: Binary target Series aligned with X.
            verbose: Print stage progress to the console.
            resume: Continue from a checkpoint when one matches the config.

        Returns:
            self for chaining.

        Raises:
            ValueError: If the dataset fails validation.
            InsufficientFeatures: If ``selection.n_final_features`` exceeds
                the number of columns (checked before any fit), or the final
                tally cannot fill it.
        """
        is_valid, issues = validate_dataset(X, y)
        if not is_valid:
            raise ValueError("Invalid dataset: " + "; ".join(issues))

        # The tally can never fill more features than there are columns
        if self.config.selection.n_final_features > X.shape[1]:
            raise InsufficientFeatures(
                requested=self.config.selection.n_final_features,
                available=X.shape[1],
                reason="feature columns are in the dataset",
            )

        X = X.reset_index(drop=True)
        y = y.reset_index(drop=True)

        cfg = self.config
        progress = create_progress_tracker(enable_console=verbose)
        display = ResultsDisplay()

        self._completed_stages = []
        if resume:
            state = self.load_checkpoint()
            if state is not None:
                self._restore(state)

        self.folds_ = RandomKFold(cfg.cv).split(X, y)
        logger.info(
            f"Data: {X.shape[0]} rows, {X.shape[1]} features, {len(self.folds_)} folds "
            f"(seed {cfg.cv.random_state})"
        )

        if verbose:
            display.print_pipeline_header(
                f"  Data: {X.shape[0]} rows x {X.shape[1]} features | folds: {len(self.folds_)} | "
                f"grid: {cfg.sweep.n_combinations()} combinations x {len(cfg.sweep.sources)} sources"
            )

        # STAGE 1: penalized-forest sweep
        if verbose:
            display.print_stage_header("STAGE 1: PENALIZED-FOREST SWEEP")
        if 'sweep' not in self._completed_stages:
            combinations = enumerate_combinations(
                cfg.sweep.fractions, cfg.sweep.lambda0s, cfg.sweep.gammas
            )
            self.sweep_result_ = run_sweep(
                X, y, self.folds_, combinations,
                sources=cfg.sweep.sources,
                forest_config=cfg.forest,
                n_jobs=cfg.sweep.n_jobs,
                trainer=self.trainer,
                progress=progress,
            )
            if verbose:
                print(display.format_sweep_summary(summarize_sweep(self.sweep_result_.records)))
            self._completed_stages.append('sweep')
            if self.checkpoint:
                self._save_checkpoint('sweep')

        # STAGE 2: top-K per fold, re-evaluated on every fold
        if verbose:
            display.print_stage_header(
                "STAGE 2: RE-EVALUATION",
                f"Top {cfg.selection.top_k} records per fold refit on all {len(self.folds_)} folds",
            )
        if 'reevaluation' not in self._completed_stages:
            self.selected_ = select_top_per_fold(self.sweep_result_.records, k=cfg.selection.top_k)
            self.reevaluation_result_ = reevaluate(
                self.selected_, X, y, self.folds_,
                forest_config=cfg.forest,
                fraction=cfg.selection.reevaluation_fraction,
                n_jobs=cfg.sweep.n_jobs,
                trainer=self.trainer,
                progress=progress,
            )
            if verbose:
                print(display.format_top_records(self.reevaluation_result_.records))
            self._completed_stages.append('reevaluation')
            if self.checkpoint:
                self._save_checkpoint('reevaluation')

        # STAGE 3: final feature set on a fresh split
        if verbose:
            display.print_stage_header(
                "STAGE 3: CONSOLIDATION",
                f"Top {cfg.selection.top_m} records vote; {cfg.selection.n_final_features} features "
                f"evaluated on {cfg.selection.final_n_splits} fresh folds",
            )
        self.final_features_ = select_final_features(
            self.reevaluation_result_.records,
            top_m=cfg.selection.top_m,
            n_features=cfg.selection.n_final_features,
        )
        self.consolidation_ = consolidate(
            X, y, self.final_features_,
            n_splits=cfg.selection.final_n_splits,
            random_state=cfg.selection.final_random_state,
            forest_config=cfg.forest,
            fraction=cfg.selection.reevaluation_fraction,
            stratify=cfg.cv.stratify,
            trainer=self.trainer,
            progress=progress,
        )
        self._completed_stages.append('consolidation')

        if verbose:
            failures = {}
            for failure in self.failures:
                failures[failure.stage] = failures.get(failure.stage, 0) + 1
            display.print_final_summary(self.consolidation_, failures)

        return self

    @property
    def failures(self) -> List[ElementFailure]:
        """Skipped sweep and re-evaluation elements."""
        failures: List[ElementFailure] = []
        if self.sweep_result_ is not None:
            failures.extend(self.sweep_result_.failures)
        if self.reevaluation_result_ is not None:
            failures.extend(self.reevaluation_result_.failures)
        return failures

    def get_final_features(self) -> List[str]:
        """Get the final feature set."""
        if self.final_features_ is None:
            return []
        return list(self.final_features_.features)

    def summary(self) -> Dict[str, Any]:
        """Headline numbers of a finished run."""
        out: Dict[str, Any] = {
            'n_folds': len(self.folds_),
            'stages': self._completed_stages.copy(),
            'n_sweep_records': len(self.sweep_result_) if self.sweep_result_ else 0,
            'n_selected': len(self.selected_),
            'n_reevaluation_records': (
                len(self.reevaluation_result_) if self.reevaluation_result_ else 0
            ),
            'n_degenerate': len(self.sweep_result_.degenerate) if self.sweep_result_ else 0,
            'n_failures': len(self.failures),
        }
        if self.consolidation_ is not None:
            out['final'] = self.consolidation_.to_dict()
        return out


# =============================================================================
# Convenience Function
# =============================================================================

def run_gain_penalization(
    X: pd.DataFrame,
    y: pd.Series,
    config: Optional[PipelineConfig] = None,
    verbose: bool = True,
) -> GainPenalizationPipeline:
    """
    Convenience function to run the gain-penalization pipeline.

    Args:
        X: Feature DataFrame
        y: Binary target Series
        config: Pipeline configuration (defaults if None)
        verbose: Whether to print progress

    Returns:
        Fitted GainPenalizationPipeline
    """
    pipeline = GainPenalizationPipeline(config=config)
    pipeline.run(X, y, verbose=verbose)
    return pipeline
