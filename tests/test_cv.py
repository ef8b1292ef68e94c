"""
Tests for seeded v-fold cross-validation.
"""
import numpy as np
import pandas as pd
import pytest

from src.gain_penalization.config import CVConfig
from src.gain_penalization.cv import RandomKFold, get_fold_info, make_folds


class TestRandomKFold:
    """Fold coverage, disjointness and reproducibility."""

    def test_test_subsets_partition_rows(self, synthetic_data):
        X, y = synthetic_data
        folds = make_folds(X, y, n_splits=5, random_state=1)
        all_test = np.concatenate([f.test_index for f in folds])
        assert sorted(all_test.tolist()) == list(range(len(X)))

    def test_train_and_test_disjoint(self, synthetic_data):
        X, y = synthetic_data
        for fold in make_folds(X, y, n_splits=5, random_state=1):
            assert len(np.intersect1d(fold.train_index, fold.test_index)) == 0
            assert fold.n_train + fold.n_test == len(X)

    def test_fold_ids(self, synthetic_data):
        X, y = synthetic_data
        ids = [f.fold_id for f in make_folds(X, y, n_splits=5)]
        assert ids == ['Fold01', 'Fold02', 'Fold03', 'Fold04', 'Fold05']

    def test_same_seed_same_folds(self, synthetic_data):
        X, y = synthetic_data
        a = make_folds(X, y, n_splits=5, random_state=3)
        b = make_folds(X, y, n_splits=5, random_state=3)
        for fa, fb in zip(a, b):
            np.testing.assert_array_equal(fa.test_index, fb.test_index)

    def test_different_seed_different_folds(self, synthetic_data):
        X, y = synthetic_data
        a = make_folds(X, y, n_splits=5, random_state=3)
        b = make_folds(X, y, n_splits=5, random_state=4)
        assert any(not np.array_equal(fa.test_index, fb.test_index) for fa, fb in zip(a, b))

    def test_stratified_keeps_both_classes(self, synthetic_data):
        X, y = synthetic_data
        folds = RandomKFold(CVConfig(n_splits=5, stratify=True, random_state=0)).split(X, y)
        for fold in folds:
            assert y.iloc[fold.test_index].nunique() == 2

    def test_stratified_requires_y(self, synthetic_data):
        X, _ = synthetic_data
        with pytest.raises(ValueError):
            RandomKFold(CVConfig(n_splits=5, stratify=True)).split(X)

    def test_too_few_rows(self):
        X = pd.DataFrame({'a': [1.0, 2.0, 3.0]})
        with pytest.raises(ValueError):
            make_folds(X, n_splits=5)

    def test_twenty_folds_padded_ids(self, synthetic_data):
        X, y = synthetic_data
        folds = make_folds(X, y, n_splits=20, random_state=2024)
        assert folds[0].fold_id == 'Fold01'
        assert folds[-1].fold_id == 'Fold20'
        assert all(f.n_test == 5 for f in folds)

    def test_fold_info(self, folds):
        info = get_fold_info(folds)
        assert list(info.columns) == ['fold_id', 'train_size', 'test_size']
        assert info['test_size'].sum() == 100
