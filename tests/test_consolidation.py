"""
Tests for feature tallying and final consolidation.
"""
import numpy as np
import pytest

from src.gain_penalization.consolidation import (
    consolidate, select_final_features, tally_features,
)
from src.gain_penalization.exceptions import InsufficientFeatures
from src.gain_penalization.records import SelectedFeatureSet


class TestTallyFeatures:
    """Occurrence counting."""

    def test_counts(self, record_factory):
        records = [
            record_factory('a', features=('x', 'y')),
            record_factory('b', features=('y', 'z')),
            record_factory('c', features=('y',)),
        ]
        counts = tally_features(records)
        assert counts == {'x': 1, 'y': 3, 'z': 1}

    def test_first_encountered_order(self, record_factory):
        records = [
            record_factory('a', features=('q', 'p')),
            record_factory('b', features=('p', 'r')),
        ]
        assert list(tally_features(records)) == ['q', 'p', 'r']


class TestSelectFinalFeatures:
    """Top-M tally and final set size."""

    def test_most_frequent_first(self, record_factory):
        records = [
            record_factory('a', test_accuracy=0.9, features=('x', 'y')),
            record_factory('b', test_accuracy=0.8, features=('y', 'z')),
            record_factory('c', test_accuracy=0.7, features=('y', 'w')),
        ]
        result = select_final_features(records, top_m=3, n_features=2)
        assert result.features[0] == 'y'
        assert result.counts[0] == 3
        assert result.features[1] == 'x'
        assert result.n_records == 3

    def test_ties_keep_encounter_order(self, record_factory):
        records = [
            record_factory('a', test_accuracy=0.9, features=('b_feat', 'a_feat')),
            record_factory('b', test_accuracy=0.8, features=('c_feat',)),
        ]
        result = select_final_features(records, top_m=2, n_features=3)
        assert result.features == ('b_feat', 'a_feat', 'c_feat')

    def test_only_top_m_vote(self, record_factory):
        records = [
            record_factory('best', test_accuracy=0.9, features=('x',)),
            record_factory('worst', test_accuracy=0.1, features=('junk',)),
        ]
        result = select_final_features(records, top_m=1, n_features=1)
        assert result.features == ('x',)
        with pytest.raises(InsufficientFeatures):
            select_final_features(records, top_m=1, n_features=2)

    def test_pool_of_eight_cannot_fill_fifteen(self, pool_of_eight_records):
        with pytest.raises(InsufficientFeatures) as exc_info:
            select_final_features(pool_of_eight_records, top_m=30, n_features=15)
        assert exc_info.value.requested == 15
        assert exc_info.value.available == 8

    def test_pool_of_eight_fills_eight(self, pool_of_eight_records):
        result = select_final_features(pool_of_eight_records, top_m=30, n_features=8)
        assert len(result) == 8
        assert list(result.counts) == sorted(result.counts, reverse=True)


class TestConsolidate:
    """Evaluation of the final feature set on a fresh split."""

    def test_twenty_fold_summary(self, synthetic_data, small_forest_config):
        X, y = synthetic_data
        feature_set = SelectedFeatureSet(
            features=('informative_1', 'informative_2'), counts=(10, 9), n_records=10
        )
        result = consolidate(X, y, feature_set, n_splits=20, random_state=2024,
                             forest_config=small_forest_config)
        assert len(result.records) == 20
        assert all(r.record_id.startswith('final@Fold') for r in result.records)
        accuracies = [r.test_accuracy for r in result.records]
        assert result.mean_test_accuracy == pytest.approx(np.mean(accuracies))
        assert result.median_test_accuracy == pytest.approx(np.median(accuracies))
        assert result.mean_test_accuracy > 0.6
        assert 0.0 <= result.mean_train_accuracy <= 1.0
        for record in result.records:
            assert set(record.features) <= {'informative_1', 'informative_2'}

    def test_to_dict_and_frame(self, synthetic_data, small_forest_config):
        X, y = synthetic_data
        feature_set = SelectedFeatureSet(features=('informative_1',), counts=(3,), n_records=3)
        result = consolidate(X, y, feature_set, n_splits=5, forest_config=small_forest_config)
        data = result.to_dict()
        assert data['features'] == ['informative_1']
        assert data['n_folds'] == 5
        assert set(data['test_accuracy']) == {'mean', 'median', 'std', 'min', 'max'}
        assert len(result.to_frame()) == 5
