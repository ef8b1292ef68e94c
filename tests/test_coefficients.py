"""
Tests for penalization coefficients and relevance sources.
"""
import numpy as np
import pandas as pd
import pytest

from src.gain_penalization.coefficients import (
    compute_coefficients, constant_vector, default_n_bins, discretize,
    model_relevance, mutual_information_relevance, normalize_relevance,
    penalization_vector,
)
from src.gain_penalization.config import CoefficientSource
from src.gain_penalization.exceptions import DegenerateRelevance, InvalidHyperparameter
from src.gain_penalization.records import FittedModelRecord, HyperparameterCombination


class TestNormalizeRelevance:
    """Scaling relevance to a maximum of 1."""

    def test_max_becomes_one(self):
        result = normalize_relevance({'a': 2.0, 'b': 1.0, 'c': 0.0})
        assert result['a'] == 1.0
        assert result['b'] == 0.5
        assert result['c'] == 0.0

    def test_scale_invariance(self):
        raw = pd.Series({'a': 3.0, 'b': 1.5, 'c': 0.2})
        pd.testing.assert_series_equal(normalize_relevance(raw), normalize_relevance(raw * 17.0))

    def test_all_zero_is_degenerate(self):
        with pytest.raises(DegenerateRelevance):
            normalize_relevance({'a': 0.0, 'b': 0.0})

    def test_nan_is_degenerate(self):
        with pytest.raises(DegenerateRelevance):
            normalize_relevance({'a': np.nan, 'b': 1.0})

    def test_empty_is_degenerate(self):
        with pytest.raises(DegenerateRelevance):
            normalize_relevance({})

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            normalize_relevance({'a': -1.0, 'b': 1.0})


class TestComputeCoefficients:
    """Mixing lambda0 with normalized relevance."""

    @pytest.mark.parametrize("lambda0", [0.0, 0.3, 0.9, 0.999])
    @pytest.mark.parametrize("gamma", [0.0, 0.5, 0.999])
    def test_bounds(self, lambda0, gamma):
        relevance = {'a': 10.0, 'b': 4.0, 'c': 0.0, 'd': 0.1}
        coefs = compute_coefficients(relevance, lambda0, gamma)
        assert (coefs >= lambda0 * (1 - gamma) - 1e-12).all()
        assert (coefs <= (1 - gamma) * lambda0 + gamma + 1e-12).all()
        assert (coefs >= 0).all()
        assert (coefs < 1).all()

    def test_formula(self):
        coefs = compute_coefficients({'a': 4.0, 'b': 1.0}, lambda0=0.5, gamma=0.6)
        assert coefs['a'] == pytest.approx(0.4 * 0.5 + 0.6 * 1.0)
        assert coefs['b'] == pytest.approx(0.4 * 0.5 + 0.6 * 0.25)

    def test_gamma_zero_is_constant_lambda0(self):
        coefs = compute_coefficients({'a': 4.0, 'b': 1.0, 'c': 0.0}, lambda0=0.7, gamma=0.0)
        assert (coefs == 0.7).all()

    def test_gamma_zero_ignores_degenerate_relevance(self):
        coefs = compute_coefficients({'a': 0.0, 'b': 0.0}, lambda0=0.4, gamma=0.0)
        assert list(coefs) == [0.4, 0.4]

    def test_gamma_near_one_tracks_relevance(self):
        relevance = pd.Series({'a': 8.0, 'b': 2.0, 'c': 1.0})
        coefs = compute_coefficients(relevance, lambda0=0.5, gamma=0.9999)
        np.testing.assert_allclose(coefs.values, normalize_relevance(relevance).values, atol=1e-3)

    @pytest.mark.parametrize("lambda0,gamma", [(1.0, 0.5), (-0.1, 0.5), (0.5, 1.0), (0.5, -0.2)])
    def test_out_of_range_rejected(self, lambda0, gamma):
        with pytest.raises(InvalidHyperparameter):
            compute_coefficients({'a': 1.0}, lambda0, gamma)

    def test_preserves_order(self):
        coefs = compute_coefficients({'z': 1.0, 'a': 2.0, 'm': 3.0}, 0.5, 0.5)
        assert list(coefs.index) == ['z', 'a', 'm']


class TestMutualInformation:
    """Mutual information relevance on discretized features."""

    def test_default_bins(self):
        assert default_n_bins(80) == 5
        assert default_n_bins(1000) == 10
        assert default_n_bins(1) == 2

    def test_discretize_equal_frequency(self):
        values = pd.Series(np.arange(100, dtype=float))
        codes = discretize(values, 4)
        assert sorted(np.unique(codes)) == [0, 1, 2, 3]
        assert all(np.bincount(codes) == 25)

    def test_discretize_constant(self):
        codes = discretize(pd.Series([3.0] * 10), 4)
        assert (codes == 0).all()

    def test_informative_feature_ranks_first(self, synthetic_data):
        X, y = synthetic_data
        mi = mutual_information_relevance(X, y)
        assert list(mi.index) == list(X.columns)
        assert (mi >= 0).all()
        top_two = set(mi.sort_values(ascending=False).index[:2])
        assert top_two & {'informative_1', 'informative_2'}

    def test_constant_feature_scores_zero(self, synthetic_data):
        X, y = synthetic_data
        X = X.copy()
        X['constant'] = 1.0
        mi = mutual_information_relevance(X, y)
        assert mi['constant'] == 0.0


class TestPenalizationVector:
    """Building vectors for sweep elements."""

    def test_vector_fields(self):
        combo = HyperparameterCombination(fraction=0.5, lambda0=0.5, gamma=0.5)
        vector = penalization_vector({'a': 2.0, 'b': 1.0}, combo, CoefficientSource.MODEL)
        assert vector.features == ('a', 'b')
        assert vector.coefficients == pytest.approx((0.75, 0.5))
        assert vector.source == CoefficientSource.MODEL
        assert not vector.degenerate

    def test_for_features_reorders(self):
        combo = HyperparameterCombination(fraction=0.5, lambda0=0.5, gamma=0.5)
        vector = penalization_vector({'a': 2.0, 'b': 1.0}, combo)
        assert vector.for_features(['b', 'a']) == pytest.approx([0.5, 0.75])

    def test_degenerate_raises(self):
        combo = HyperparameterCombination(fraction=0.5, lambda0=0.5, gamma=0.5)
        with pytest.raises(DegenerateRelevance):
            penalization_vector({'a': 0.0, 'b': 0.0}, combo)

    def test_constant_vector(self):
        combo = HyperparameterCombination(fraction=0.5, lambda0=0.3, gamma=0.5)
        vector = constant_vector(['a', 'b', 'c'], combo)
        assert vector.coefficients == (0.3, 0.3, 0.3)
        assert vector.degenerate

    def test_model_relevance_uses_feature_order(self):
        fitted = FittedModelRecord(
            fold_id='Fold01',
            features=('b', 'a', 'c'),
            importance={'a': 1.0, 'b': 3.0},
            train_error=0.1,
            mtry=1,
        )
        relevance = model_relevance(fitted)
        assert list(relevance.index) == ['b', 'a', 'c']
        assert list(relevance) == [3.0, 1.0, 0.0]
