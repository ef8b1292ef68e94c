"""
Tests for configuration objects and YAML round trips.
"""
from pathlib import Path

import pytest

from src.gain_penalization.config import (
    CoefficientSource, CVConfig, ForestConfig, PipelineConfig, SelectionConfig,
    SweepConfig, config_to_dict, fast_config, load_config, save_config,
)

CONFIG_DIR = Path(__file__).parent.parent / "config"


class TestConfigValidation:
    """__post_init__ checks."""

    def test_defaults(self):
        config = PipelineConfig()
        assert config.cv.n_splits == 5
        assert config.selection.top_k == 3
        assert config.selection.top_m == 30
        assert config.selection.n_final_features == 15
        assert config.selection.final_n_splits == 20
        assert config.sweep.n_combinations() == 27
        assert config.sweep.sources == [CoefficientSource.MODEL, CoefficientSource.MUTUAL_INFORMATION]

    def test_sources_coerced_from_strings(self):
        sweep = SweepConfig(sources=['mutual_information'])
        assert sweep.sources == [CoefficientSource.MUTUAL_INFORMATION]

    def test_unknown_source(self):
        with pytest.raises(ValueError):
            SweepConfig(sources=['entropy'])

    @pytest.mark.parametrize("kwargs", [
        {'num_trees': 0},
        {'bagging_fraction': 1.0},
        {'min_data_in_leaf': 0},
    ])
    def test_invalid_forest(self, kwargs):
        with pytest.raises(ValueError):
            ForestConfig(**kwargs)

    def test_invalid_cv(self):
        with pytest.raises(ValueError):
            CVConfig(n_splits=1)

    def test_invalid_selection(self):
        with pytest.raises(ValueError):
            SelectionConfig(top_k=0)
        with pytest.raises(ValueError):
            SelectionConfig(final_n_splits=1)

    def test_empty_grid(self):
        with pytest.raises(ValueError):
            SweepConfig(gammas=[])


class TestYamlConfig:
    """Loading and saving YAML."""

    def test_round_trip(self, tmp_path):
        config = fast_config()
        config.target_column = 'label'
        config.sweep.sources = [CoefficientSource.MUTUAL_INFORMATION]
        path = tmp_path / "config.yaml"
        save_config(config, path)
        loaded = load_config(path)
        assert loaded == config

    def test_shipped_config_loads(self):
        config = load_config(CONFIG_DIR / "gain_penalization.yaml")
        assert config == PipelineConfig()

    def test_partial_file_uses_defaults(self, tmp_path):
        path = tmp_path / "partial.yaml"
        path.write_text("selection:\n  n_final_features: 4\n")
        config = load_config(path)
        assert config.selection.n_final_features == 4
        assert config.forest == ForestConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_config_to_dict_serializable(self):
        data = config_to_dict(PipelineConfig())
        assert data['sweep']['sources'] == ['model', 'mutual_information']
