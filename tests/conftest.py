"""
Pytest fixtures for the gain-penalization pipeline.

This module provides reusable test fixtures including synthetic datasets,
small forest configurations and hand-built evaluation records.
"""
import pytest
import numpy as np
import pandas as pd
from typing import List

from src.gain_penalization.config import (
    CoefficientSource, CVConfig, ForestConfig, PipelineConfig,
    SelectionConfig, SweepConfig,
)
from src.gain_penalization.cv import make_folds
from src.gain_penalization.records import EvaluationRecord


# Register custom pytest markers
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


@pytest.fixture
def synthetic_data():
    """100 rows, 2 informative and 8 noise features, binary target."""
    np.random.seed(42)  # For reproducible tests
    n_samples = 100

    informative = np.random.normal(size=(n_samples, 2))
    noise = np.random.normal(size=(n_samples, 8))
    signal = informative.sum(axis=1) + np.random.normal(scale=0.3, size=n_samples)

    columns = ['informative_1', 'informative_2'] + [f'noise_{i}' for i in range(1, 9)]
    X = pd.DataFrame(np.hstack([informative, noise]), columns=columns)
    y = pd.Series((signal > 0).astype(int), name='target')
    return X, y


@pytest.fixture
def folds(synthetic_data):
    """Five seeded folds over the synthetic data."""
    X, y = synthetic_data
    return make_folds(X, y, n_splits=5, random_state=42)


@pytest.fixture
def small_forest_config():
    """Forest small enough for fast unit tests."""
    return ForestConfig(num_trees=25, random_state=7)


@pytest.fixture
def small_pipeline_config(tmp_path):
    """One grid point, one relevance source, tiny forests."""
    return PipelineConfig(
        forest=ForestConfig(num_trees=25, random_state=7),
        cv=CVConfig(n_splits=5, random_state=42),
        sweep=SweepConfig(
            fractions=[0.5],
            lambda0s=[0.5],
            gammas=[0.5],
            sources=[CoefficientSource.MODEL],
        ),
        selection=SelectionConfig(
            top_k=2, top_m=10, n_final_features=2,
            final_n_splits=5, final_random_state=2024,
        ),
        output_dir=str(tmp_path / "run"),
    )


def make_record(
    record_id: str,
    fold_id: str = "Fold01",
    test_accuracy: float = 0.8,
    train_accuracy: float = 0.9,
    features=("a", "b"),
    origin_id=None,
) -> EvaluationRecord:
    """Build an EvaluationRecord by hand."""
    features = tuple(features)
    return EvaluationRecord(
        record_id=record_id,
        fold_id=fold_id,
        test_accuracy=test_accuracy,
        train_accuracy=train_accuracy,
        n_features=len(features),
        features=features,
        origin_id=origin_id,
    )


@pytest.fixture
def record_factory():
    """Factory fixture for hand-built evaluation records."""
    return make_record


@pytest.fixture
def pool_of_eight_records() -> List[EvaluationRecord]:
    """30 records with 5-feature sets drawn from a pool of 8 distinct features."""
    pool = [f"f{i}" for i in range(1, 9)]
    records = []
    for i in range(30):
        start = i % len(pool)
        features = [pool[(start + j) % len(pool)] for j in range(5)]
        records.append(make_record(
            f"r{i:02d}",
            fold_id=f"Fold{(i % 5) + 1:02d}",
            test_accuracy=0.5 + 0.01 * (i % 7),
            features=features,
        ))
    return records
