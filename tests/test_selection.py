"""
Tests for ranking, top-K selection and re-evaluation.
"""
import random

import pytest

from src.gain_penalization.config import CoefficientSource
from src.gain_penalization.exceptions import EmptyFeatureSet
from src.gain_penalization.models import create_trainer
from src.gain_penalization.selection import (
    group_by_fold, rank_records, ranking_key, reevaluate,
    reevaluate_feature_set, select_top_per_fold,
)
from src.gain_penalization.sweep import enumerate_combinations, run_sweep


class TestRanking:
    """Composite ranking key."""

    def test_test_accuracy_first(self, record_factory):
        a = record_factory('a', test_accuracy=0.9, train_accuracy=0.5)
        b = record_factory('b', test_accuracy=0.8, train_accuracy=1.0)
        assert [r.record_id for r in rank_records([b, a])] == ['a', 'b']

    def test_train_accuracy_breaks_ties(self, record_factory):
        a = record_factory('a', test_accuracy=0.8, train_accuracy=0.85)
        b = record_factory('b', test_accuracy=0.8, train_accuracy=0.95)
        assert [r.record_id for r in rank_records([a, b])] == ['b', 'a']

    def test_fewer_features_break_ties(self, record_factory):
        a = record_factory('a', test_accuracy=0.8, train_accuracy=0.9, features=('x', 'y', 'z'))
        b = record_factory('b', test_accuracy=0.8, train_accuracy=0.9, features=('x',))
        assert [r.record_id for r in rank_records([a, b])] == ['b', 'a']

    def test_stable_for_identical_keys(self, record_factory):
        records = [record_factory(f'r{i}') for i in range(5)]
        assert rank_records(records) == records

    def test_deterministic_under_shuffle(self, record_factory):
        records = [
            record_factory(f'r{i}', test_accuracy=0.5 + 0.1 * (i % 3), features=('a',) * (1 + i % 2))
            for i in range(12)
        ]
        keys = [ranking_key(r) for r in rank_records(records)]
        shuffled = records[:]
        random.Random(0).shuffle(shuffled)
        assert [ranking_key(r) for r in rank_records(shuffled)] == keys


class TestSelectTopPerFold:
    """Top-K per fold."""

    def test_k_per_fold(self, record_factory):
        records = [
            record_factory(f'{fold}-{i}', fold_id=fold, test_accuracy=0.5 + 0.1 * i)
            for fold in ['Fold02', 'Fold01']
            for i in range(4)
        ]
        selected = select_top_per_fold(records, k=3)
        assert len(selected) == 6
        assert [r.record_id for r in selected] == [
            'Fold01-3', 'Fold01-2', 'Fold01-1', 'Fold02-3', 'Fold02-2', 'Fold02-1',
        ]

    def test_fewer_than_k(self, record_factory):
        records = [record_factory('only', fold_id='Fold01')]
        assert len(select_top_per_fold(records, k=3)) == 1

    def test_invalid_k(self, record_factory):
        with pytest.raises(ValueError):
            select_top_per_fold([record_factory('a')], k=0)

    def test_group_by_fold_sorted(self, record_factory):
        records = [record_factory('a', fold_id='Fold03'), record_factory('b', fold_id='Fold01')]
        assert list(group_by_fold(records)) == ['Fold01', 'Fold03']


class TestReevaluation:
    """Unpenalized refits of selected feature sets on every fold."""

    def test_restricted_to_feature_set(self, synthetic_data, folds, small_forest_config, record_factory):
        X, y = synthetic_data
        origin = record_factory('origin', features=('informative_1', 'noise_3'))
        records = reevaluate_feature_set(origin, X, y, folds, create_trainer(small_forest_config))
        assert len(records) == len(folds)
        for record in records:
            assert set(record.features) <= {'informative_1', 'noise_3'}
            assert record.origin_id == 'origin'
            assert record.record_id == f'origin@{record.fold_id}'

    def test_empty_feature_set_raises(self, synthetic_data, folds, small_forest_config, record_factory):
        X, y = synthetic_data
        origin = record_factory('empty', features=())
        with pytest.raises(EmptyFeatureSet):
            reevaluate_feature_set(origin, X, y, folds, create_trainer(small_forest_config))

    def test_empty_feature_set_skipped(self, synthetic_data, folds, small_forest_config, record_factory):
        X, y = synthetic_data
        selected = [
            record_factory('good', features=('informative_1', 'informative_2')),
            record_factory('empty', features=()),
        ]
        result = reevaluate(selected, X, y, folds, forest_config=small_forest_config)
        assert len(result.records) == len(folds)
        assert [f.element_id for f in result.failures] == ['empty']
        assert result.failures[0].stage == 'reevaluation'

    def test_cardinality_from_sweep(self, synthetic_data, folds, small_forest_config):
        X, y = synthetic_data
        combos = enumerate_combinations([0.3, 0.5], [0.5], [0.3, 0.9])
        sweep = run_sweep(
            X, y, folds, combos,
            sources=[CoefficientSource.MODEL],
            forest_config=small_forest_config,
        )
        selected = select_top_per_fold(sweep.records, k=3)
        assert len(selected) == 3 * len(folds)

        result = reevaluate(selected, X, y, folds, forest_config=small_forest_config)
        nonempty = [s for s in selected if s.features]
        assert len(result.records) == len(nonempty) * len(folds)
        assert len(result.failures) == len(selected) - len(nonempty)
