"""Dataset loading, validation and synthetic data generation."""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union
import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def load_dataset(
    path: Union[str, Path],
    target_column: str = "target",
    feature_columns: Optional[Sequence[str]] = None
) -> Tuple[pd.DataFrame, pd.Series]:
    """Load a labeled dataset from CSV or Parquet.

    Args:
        path: Path to a .csv or .parquet file.
        target_column: Name of the label column.
        feature_columns: Columns to use as features (default: every numeric
            column other than the target).

    Returns:
        Tuple of (X, y) with a fresh RangeIndex.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Dataset not found: {path}")

    if path.suffix == '.parquet':
        df = pd.read_parquet(path)
    else:
        df = pd.read_csv(path)

    if target_column not in df.columns:
        raise KeyError(f"Target column '{target_column}' not in {path.name}")

    if feature_columns is None:
        feature_columns = [
            c for c in df.select_dtypes(include='number').columns if c != target_column
        ]
        dropped = [c for c in df.columns if c not in feature_columns and c != target_column]
        if dropped:
            logger.info(f"Ignoring {len(dropped)} non-numeric columns: {dropped[:5]}")

    df = df.reset_index(drop=True)
    X = df[list(feature_columns)].copy()
    y = df[target_column].copy()
    logger.info(f"Loaded {path.name}: {X.shape[0]} rows, {X.shape[1]} features")
    return X, y


def make_synthetic_dataset(
    n_samples: int = 100,
    n_informative: int = 2,
    n_noise: int = 8,
    noise_scale: float = 0.5,
    random_state: int = 42
) -> Tuple[pd.DataFrame, pd.Series]:
    """Binary dataset with a few informative features and pure-noise ones.

    The label is 1 when the sum of the informative features plus Gaussian
    noise is positive.

    Args:
        n_samples: Number of rows.
        n_informative: Features that drive the label (named informative_1, ...).
        n_noise: Features unrelated to the label (named noise_1, ...).
        noise_scale: Standard deviation of the label noise.
        random_state: Seed.

    Returns:
        Tuple of (X, y).
    """
    rng = np.random.default_rng(random_state)

    informative = rng.normal(size=(n_samples, n_informative))
    noise = rng.normal(size=(n_samples, n_noise))
    signal = informative.sum(axis=1) + rng.normal(scale=noise_scale, size=n_samples)

    columns = (
        [f'informative_{i + 1}' for i in range(n_informative)]
        + [f'noise_{i + 1}' for i in range(n_noise)]
    )
    X = pd.DataFrame(np.hstack([informative, noise]), columns=columns)
    y = pd.Series((signal > 0).astype(int), name='target')
    return X, y


def validate_dataset(X: pd.DataFrame, y: pd.Series) -> Tuple[bool, List[str]]:
    """Validate input data for the pipeline.

    Args:
        X: Feature DataFrame.
        y: Target Series.

    Returns:
        Tuple of (is_valid, list_of_issues).
    """
    issues = []

    if len(X) != len(y):
        issues.append(f"X and y have different lengths ({len(X)} vs {len(y)})")

    if X.shape[1] == 0:
        issues.append("No feature columns")

    non_numeric = [c for c in X.columns if not pd.api.types.is_numeric_dtype(X[c])]
    if non_numeric:
        issues.append(f"Non-numeric feature columns: {non_numeric[:5]}")

    if X.columns.duplicated().any():
        issues.append(f"Duplicate column names: {X.columns[X.columns.duplicated()].tolist()[:5]}")

    nan_cols = X.columns[X.isna().any()].tolist()
    if nan_cols:
        issues.append(f"Columns with missing values: {nan_cols[:5]}")

    if y.isna().any():
        issues.append(f"Target has {int(y.isna().sum())} missing values")

    n_classes = y.dropna().nunique()
    if n_classes != 2:
        issues.append(f"Target must have exactly two classes, found {n_classes}")

    return len(issues) == 0, issues
