"""Tests for SolverConfig and YAML loading."""

import dataclasses

import pytest

from dimtools.core.config import SolverConfig, load_config, resolve_config
from dimtools.errors import InvalidInputError


class TestSolverConfig:

    def test_defaults(self):
        config = SolverConfig()
        assert config.rank_tol == 1e-10
        assert config.singular_tol == 1e-10
        assert config.symmetry_tol == 1e-8
        assert config.zero_tol == 1e-8

    def test_frozen(self):
        config = SolverConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.rank_tol = 1.0

    def test_int_cast_to_float(self):
        assert isinstance(SolverConfig(zero_tol=0).zero_tol, float)

    @pytest.mark.parametrize("value", [-1e-3, float("nan"), "small", True])
    def test_rejects_bad_values(self, value):
        with pytest.raises(InvalidInputError):
            SolverConfig(rank_tol=value)

    def test_round_trip_dict(self):
        config = SolverConfig(rank_tol=1e-6)
        assert SolverConfig.from_dict(config.to_dict()) == config

    def test_unknown_key(self):
        with pytest.raises(InvalidInputError, match="Unknown solver config keys"):
            SolverConfig.from_dict({'rank_tolerance': 1e-6})


class TestLoadConfig:

    def test_no_path_gives_defaults(self):
        assert load_config() == SolverConfig()

    def test_flat_yaml(self, tmp_path):
        path = tmp_path / "solver.yaml"
        path.write_text("rank_tol: 1.0e-6\nzero_tol: 1.0e-9\n")
        config = load_config(path)
        assert config.rank_tol == 1e-6
        assert config.zero_tol == 1e-9
        assert config.singular_tol == 1e-10

    def test_nested_yaml(self, tmp_path):
        path = tmp_path / "solver.yaml"
        path.write_text("solver:\n  singular_tol: 1.0e-5\n")
        assert load_config(str(path)).singular_tol == 1e-5

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "solver.yaml"
        path.write_text("")
        assert load_config(path) == SolverConfig()

    def test_overrides_win(self, tmp_path):
        path = tmp_path / "solver.yaml"
        path.write_text("rank_tol: 1.0e-6\n")
        assert load_config(path, rank_tol=1e-3).rank_tol == 1e-3

    def test_unknown_override(self):
        with pytest.raises(InvalidInputError):
            load_config(tolerance=1.0)

    def test_unknown_yaml_key(self, tmp_path):
        path = tmp_path / "solver.yaml"
        path.write_text("solver:\n  ridge: 0.1\n")
        with pytest.raises(InvalidInputError):
            load_config(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "solver.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(InvalidInputError):
            load_config(path)

    def test_negative_value_in_file(self, tmp_path):
        path = tmp_path / "solver.yaml"
        path.write_text("zero_tol: -1\n")
        with pytest.raises(InvalidInputError):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")


class TestResolveConfig:

    def test_none(self):
        assert resolve_config(None) == SolverConfig()

    def test_passthrough(self):
        config = SolverConfig(zero_tol=1e-4)
        assert resolve_config(config) is config

    def test_wrong_type(self):
        with pytest.raises(InvalidInputError):
            resolve_config({'zero_tol': 1e-4})
