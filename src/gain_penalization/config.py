"""Configuration dataclasses for the gain-penalization pipeline.

This module defines the configuration objects used throughout the
penalized-forest sweep, the re-evaluation of selected feature sets and the
final consolidation, plus YAML loading and saving.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import yaml


class CoefficientSource(Enum):
    """Where per-feature relevance comes from before it is mixed with lambda0."""
    MODEL = "model"  # Normalized importance of an unpenalized forest
    MUTUAL_INFORMATION = "mutual_information"  # Normalized MI with the label


@dataclass
class ForestConfig:
    """Configuration for the random forest engine.

    Attributes:
        num_trees: Number of trees in the ensemble.
        bagging_fraction: Fraction of rows sampled (without replacement) per tree.
        num_leaves: Maximum leaves per tree (large values grow deep trees).
        max_depth: Maximum tree depth (-1 for unlimited).
        min_data_in_leaf: Minimum observations in a terminal node.
        num_threads: Threads per fit (keep at 1 when the sweep runs in parallel).
        random_state: Seed passed to every fit.
        params: Extra LightGBM parameters, applied last.
    """
    num_trees: int = 500
    bagging_fraction: float = 0.632
    num_leaves: int = 255
    max_depth: int = -1
    min_data_in_leaf: int = 1
    num_threads: int = 1
    random_state: int = 42
    params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.num_trees < 1:
            raise ValueError("num_trees must be at least 1")
        if not 0.0 < self.bagging_fraction < 1.0:
            raise ValueError("bagging_fraction must be in (0, 1)")
        if self.min_data_in_leaf < 1:
            raise ValueError("min_data_in_leaf must be at least 1")

    def get_model_params(self) -> Dict[str, Any]:
        """Build the LightGBM parameter dict for random forest mode."""
        params = {
            'objective': 'binary',
            'boosting': 'rf',
            'bagging_freq': 1,
            'bagging_fraction': self.bagging_fraction,
            'num_leaves': self.num_leaves,
            'max_depth': self.max_depth,
            'min_data_in_leaf': self.min_data_in_leaf,
            'min_sum_hessian_in_leaf': 1e-6,
            'min_gain_to_split': 0.0,
            'feature_pre_filter': False,
            'force_col_wise': True,
            'deterministic': True,
            'num_threads': self.num_threads,
            'seed': self.random_state,
            'verbose': -1,
        }
        params.update(self.params)
        return params


@dataclass
class CVConfig:
    """Configuration for randomized v-fold cross-validation.

    Attributes:
        n_splits: Number of folds (v).
        stratify: Keep class proportions within folds.
        random_state: Seed for the partition.
    """
    n_splits: int = 5
    stratify: bool = False
    random_state: int = 42

    def __post_init__(self):
        if self.n_splits < 2:
            raise ValueError("n_splits must be at least 2")


@dataclass
class SweepConfig:
    """Hyperparameter grid for the penalized-forest sweep.

    Attributes:
        fractions: Fractions of the features considered at each split.
        lambda0s: Baseline regularization values, each in [0, 1).
        gammas: Mixing weights, each in [0, 1).
        sources: Relevance sources to sweep over.
        n_jobs: Parallel workers for sweep elements (1 = sequential, -1 = all cores).
    """
    fractions: List[float] = field(default_factory=lambda: [0.15, 0.25, 0.35])
    lambda0s: List[float] = field(default_factory=lambda: [0.5, 0.75, 0.9])
    gammas: List[float] = field(default_factory=lambda: [0.3, 0.6, 0.9])
    sources: List[CoefficientSource] = field(default_factory=lambda: [
        CoefficientSource.MODEL,
        CoefficientSource.MUTUAL_INFORMATION,
    ])
    n_jobs: int = 1

    def __post_init__(self):
        if not (self.fractions and self.lambda0s and self.gammas):
            raise ValueError("fractions, lambda0s and gammas must all be non-empty")
        if not self.sources:
            raise ValueError("at least one coefficient source is required")
        self.sources = [CoefficientSource(s) for s in self.sources]

    def n_combinations(self) -> int:
        """Number of (fraction, lambda0, gamma) combinations in the grid."""
        return len(self.fractions) * len(self.lambda0s) * len(self.gammas)


@dataclass
class SelectionConfig:
    """Configuration for model selection, re-evaluation and consolidation.

    Attributes:
        top_k: Records kept per fold after the sweep.
        top_m: Re-evaluation records whose feature sets are tallied.
        n_final_features: Size of the final feature set.
        final_n_splits: Folds used to evaluate the final feature set.
        final_random_state: Seed for the final partition.
        reevaluation_fraction: Split-candidate fraction for unpenalized refits
            (None = floor(sqrt(p)) features per split).
    """
    top_k: int = 3
    top_m: int = 30
    n_final_features: int = 15
    final_n_splits: int = 20
    final_random_state: int = 2024
    reevaluation_fraction: Optional[float] = None

    def __post_init__(self):
        if self.top_k < 1 or self.top_m < 1:
            raise ValueError("top_k and top_m must be at least 1")
        if self.n_final_features < 1:
            raise ValueError("n_final_features must be at least 1")
        if self.final_n_splits < 2:
            raise ValueError("final_n_splits must be at least 2")


@dataclass
class PipelineConfig:
    """Master configuration for the gain-penalization pipeline.

    Combines all sub-configurations into a single object.
    """
    forest: ForestConfig = field(default_factory=ForestConfig)
    cv: CVConfig = field(default_factory=CVConfig)
    sweep: SweepConfig = field(default_factory=SweepConfig)
    selection: SelectionConfig = field(default_factory=SelectionConfig)

    # Data
    data_file: Optional[str] = None
    target_column: str = "target"

    # Outputs
    output_dir: str = "artifacts/gain_penalization"


def load_config(path: Union[str, Path]) -> PipelineConfig:
    """Load configuration from YAML file.

    Args:
        path: Path to YAML configuration file.

    Returns:
        PipelineConfig object. Missing sections fall back to defaults.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    sweep_data = dict(data.get("sweep", {}))
    if "sources" in sweep_data:
        sweep_data["sources"] = [CoefficientSource(s) for s in sweep_data["sources"]]

    config = PipelineConfig(
        forest=ForestConfig(**data.get("forest", {})),
        cv=CVConfig(**data.get("cv", {})),
        sweep=SweepConfig(**sweep_data),
        selection=SelectionConfig(**data.get("selection", {})),
    )

    for key in ["data_file", "target_column", "output_dir"]:
        if key in data:
            setattr(config, key, data[key])

    return config


def config_to_dict(config: PipelineConfig) -> Dict[str, Any]:
    """Convert a PipelineConfig to plain YAML/JSON-serializable types."""
    data = asdict(config)
    data["sweep"]["sources"] = [s.value for s in config.sweep.sources]
    return data


def save_config(config: PipelineConfig, path: Union[str, Path]) -> None:
    """Save configuration to YAML file.

    Args:
        config: PipelineConfig object to save.
        path: Output path.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        yaml.dump(config_to_dict(config), f, default_flow_style=False, sort_keys=False)


def fast_config() -> PipelineConfig:
    """Small configuration for smoke runs on toy data."""
    return PipelineConfig(
        forest=ForestConfig(num_trees=50),
        sweep=SweepConfig(fractions=[0.5], lambda0s=[0.5], gammas=[0.5]),
        selection=SelectionConfig(top_m=10, n_final_features=3, final_n_splits=5),
    )
