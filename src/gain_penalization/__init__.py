"""Gain-penalized random forest feature selection.

Random forests whose split gains are scaled per feature by a coefficient in
[0, 1) drift towards a small set of features. This package sweeps the
penalization hyperparameters, keeps the best models per fold, re-evaluates
their feature sets on every fold and consolidates one final feature set:

- Penalization coefficients from forest importance or mutual information
- LightGBM random forest engine with per-feature gain penalties
- Seeded randomized v-fold cross-validation
- Parallel sweep with per-element failure reporting
- Console tables, matplotlib figures and CSV/JSON artifacts

Quick Start
-----------
```python
from src.gain_penalization import run_gain_penalization, make_synthetic_dataset, fast_config

X, y = make_synthetic_dataset(n_samples=100, n_informative=2, n_noise=8)
pipeline = run_gain_penalization(X, y, config=fast_config())

print(pipeline.get_final_features())
print(pipeline.consolidation_.mean_test_accuracy)
```

Advanced Usage
--------------
```python
from src.gain_penalization import (
    PipelineConfig, ForestConfig, SweepConfig, SelectionConfig,
    CoefficientSource, GainPenalizationPipeline, write_artifacts,
)

config = PipelineConfig(
    forest=ForestConfig(num_trees=300),
    sweep=SweepConfig(
        fractions=[0.2, 0.4],
        lambda0s=[0.5, 0.9],
        gammas=[0.3, 0.9],
        sources=[CoefficientSource.MUTUAL_INFORMATION],
        n_jobs=-1,
    ),
    selection=SelectionConfig(n_final_features=10),
)
pipeline = GainPenalizationPipeline(config).run(X, y)
write_artifacts(pipeline, "artifacts/run1")
```
"""

# Configuration
from .config import (
    CoefficientSource,
    ForestConfig,
    CVConfig,
    SweepConfig,
    SelectionConfig,
    PipelineConfig,
    load_config,
    save_config,
    config_to_dict,
    fast_config,
)

# Errors
from .exceptions import (
    GainPenalizationError,
    DegenerateRelevance,
    InvalidHyperparameter,
    EmptyFeatureSet,
    InsufficientFeatures,
)

# Records
from .records import (
    Fold,
    HyperparameterCombination,
    PenalizationVector,
    FittedModelRecord,
    EvaluationRecord,
    SelectedFeatureSet,
    ElementFailure,
    records_to_frame,
)

# Cross-validation
from .cv import RandomKFold, make_folds, get_fold_info

# Coefficients
from .coefficients import (
    normalize_relevance,
    compute_coefficients,
    model_relevance,
    mutual_information_relevance,
    penalization_vector,
    constant_vector,
)

# Models
from .models import (
    ForestTrainer,
    PenalizedForest,
    LightGBMForestTrainer,
    create_trainer,
    resolve_mtry,
)

# Evaluation
from .evaluation import split_fold, evaluate_fit, fit_and_evaluate
from .metrics import compute_accuracy, summarize_accuracies

# Stages
from .sweep import SweepResult, enumerate_combinations, run_sweep
from .selection import (
    ReevaluationResult,
    ranking_key,
    rank_records,
    select_top_per_fold,
    reevaluate,
)
from .consolidation import (
    ConsolidationResult,
    tally_features,
    select_final_features,
    consolidate,
)

# Pipeline
from .pipeline import GainPenalizationPipeline, run_gain_penalization

# Progress and reporting
from .progress import ProgressTracker, create_progress_tracker
from .display import ResultsDisplay, summarize_sweep
from .artifacts import write_artifacts, compute_run_signature

# Data
from .data import load_dataset, make_synthetic_dataset, validate_dataset

__all__ = [
    # Configuration
    'CoefficientSource', 'ForestConfig', 'CVConfig', 'SweepConfig',
    'SelectionConfig', 'PipelineConfig', 'load_config', 'save_config',
    'config_to_dict', 'fast_config',
    # Errors
    'GainPenalizationError', 'DegenerateRelevance', 'InvalidHyperparameter',
    'EmptyFeatureSet', 'InsufficientFeatures',
    # Records
    'Fold', 'HyperparameterCombination', 'PenalizationVector',
    'FittedModelRecord', 'EvaluationRecord', 'SelectedFeatureSet',
    'ElementFailure', 'records_to_frame',
    # Cross-validation
    'RandomKFold', 'make_folds', 'get_fold_info',
    # Coefficients
    'normalize_relevance', 'compute_coefficients', 'model_relevance',
    'mutual_information_relevance', 'penalization_vector', 'constant_vector',
    # Models
    'ForestTrainer', 'PenalizedForest', 'LightGBMForestTrainer',
    'create_trainer', 'resolve_mtry',
    # Evaluation
    'split_fold', 'evaluate_fit', 'fit_and_evaluate',
    'compute_accuracy', 'summarize_accuracies',
    # Stages
    'SweepResult', 'enumerate_combinations', 'run_sweep',
    'ReevaluationResult', 'ranking_key', 'rank_records',
    'select_top_per_fold', 'reevaluate',
    'ConsolidationResult', 'tally_features', 'select_final_features', 'consolidate',
    # Pipeline
    'GainPenalizationPipeline', 'run_gain_penalization',
    # Progress and reporting
    'ProgressTracker', 'create_progress_tracker',
    'ResultsDisplay', 'summarize_sweep',
    'write_artifacts', 'compute_run_signature',
    # Data
    'load_dataset', 'make_synthetic_dataset', 'validate_dataset',
]

__version__ = '1.0.0'
