"""Randomized v-fold cross-validation producing ``Fold`` records.

Every partition takes an explicit seed so a fold set can be regenerated
in isolation, without relying on global random state.
"""

from typing import List, Optional, Union
import numpy as np
import pandas as pd
from sklearn.model_selection import KFold, StratifiedKFold

from .config import CVConfig
from .records import Fold


class RandomKFold:
    """Seeded v-fold splitter returning ``Fold`` records.

    Rows are shuffled once with ``random_state`` and split into
    ``n_splits`` disjoint test subsets; each fold trains on the remaining
    rows. With ``stratify=True`` the class proportions of ``y`` are kept
    within each fold.

    Attributes:
        config: CVConfig with split parameters.
    """

    def __init__(self, config: CVConfig):
        """Initialize the splitter.

        Args:
            config: CVConfig specifying split parameters.
        """
        self.config = config

    def split(
        self,
        X: Union[pd.DataFrame, np.ndarray],
        y: Optional[Union[pd.Series, np.ndarray]] = None
    ) -> List[Fold]:
        """Partition the rows of X into folds.

        Args:
            X: Feature matrix (used only for length).
            y: Target vector (required when stratifying).

        Returns:
            List of Fold records named Fold01, Fold02, ...
        """
        n_samples = len(X)
        if n_samples < self.config.n_splits:
            raise ValueError(
                f"Cannot split {n_samples} rows into {self.config.n_splits} folds"
            )

        if self.config.stratify:
            if y is None:
                raise ValueError("y is required for stratified splitting")
            splitter = StratifiedKFold(
                n_splits=self.config.n_splits,
                shuffle=True,
                random_state=self.config.random_state,
            )
            index_pairs = splitter.split(np.zeros(n_samples), np.asarray(y))
        else:
            splitter = KFold(
                n_splits=self.config.n_splits,
                shuffle=True,
                random_state=self.config.random_state,
            )
            index_pairs = splitter.split(np.zeros(n_samples))

        width = max(2, len(str(self.config.n_splits)))
        folds = []
        for fold_idx, (train_idx, test_idx) in enumerate(index_pairs):
            folds.append(Fold(
                fold_id=f"Fold{fold_idx + 1:0{width}d}",
                train_index=np.sort(train_idx),
                test_index=np.sort(test_idx),
            ))
        return folds


def make_folds(
    X: Union[pd.DataFrame, np.ndarray],
    y: Optional[Union[pd.Series, np.ndarray]] = None,
    n_splits: int = 5,
    random_state: int = 42,
    stratify: bool = False
) -> List[Fold]:
    """Partition a dataset into ``n_splits`` seeded folds.

    Args:
        X: Feature matrix.
        y: Target vector (needed when stratify=True).
        n_splits: Number of folds.
        random_state: Seed for the partition.
        stratify: Keep class proportions within folds.

    Returns:
        List of Fold records.
    """
    config = CVConfig(n_splits=n_splits, stratify=stratify, random_state=random_state)
    return RandomKFold(config).split(X, y)


def get_fold_info(folds: List[Fold]) -> pd.DataFrame:
    """Get information about each fold.

    Args:
        folds: Fold records.

    Returns:
        DataFrame with one row per fold (train/test sizes).
    """
    return pd.DataFrame([
        {'fold_id': f.fold_id, 'train_size': f.n_train, 'test_size': f.n_test}
        for f in folds
    ])
