"""Tests for config loading."""

from pathlib import Path

import pytest

from decktourney.config import API_URL_ENV, BackendConfig, load_config
from decktourney.core.http_backend import DEFAULT_BASE_URL


def _write(tmp_path, text):
    path = tmp_path / "tournament.yaml"
    path.write_text(text)
    return path


class TestLoadConfig:
    def test_example_config_loads(self, example_config_path, monkeypatch):
        monkeypatch.delenv(API_URL_ENV, raising=False)
        config = load_config(example_config_path)
        assert config.name == "test-run"
        assert config.seed == 42
        assert config.rounds == 10
        assert config.backend.provider == "mock"
        assert config.backend.strategy == "higher_sum"
        assert config.backend.timeout_s is None
        assert config.decks.mode == "fixed"
        assert config.decks.swapped is False
        assert config.timing.poll_interval_s == 0.0

    def test_skew_weights_keys_are_ints(self, example_config_path):
        config = load_config(example_config_path)
        skew = config.decks.skew
        assert skew.side == "B"
        assert skew.first_round == 6
        assert skew.last_round == 10
        assert skew.weights[1] == 6
        assert all(isinstance(k, int) for k in skew.weights)

    def test_minimal_config_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv(API_URL_ENV, raising=False)
        config = load_config(_write(tmp_path, "tournament:\n  name: bare\n  seed: 1\n"))
        assert config.rounds == 10
        assert config.backend.provider == "http"
        assert config.backend.base_url == DEFAULT_BASE_URL
        assert config.decks.mode == "fixed"
        assert config.decks.skew.weights is None
        assert config.timing.poll_interval_s == 0.05
        assert config.timing.inter_round_pause_s == 1.0
        assert config.output_dir is None

    def test_env_overrides_base_url(self, tmp_path, monkeypatch):
        monkeypatch.setenv(API_URL_ENV, "http://10.0.0.5:8080")
        path = _write(
            tmp_path,
            "tournament:\n  name: env\n  seed: 1\n"
            "backend:\n  provider: http\n  base_url: http://ignored:5000\n",
        )
        assert load_config(path).backend.base_url == "http://10.0.0.5:8080"

    def test_skew_side_upper_cased(self, tmp_path):
        path = _write(
            tmp_path,
            "tournament:\n  name: s\n  seed: 3\n"
            "decks:\n  mode: skewed\n  skew:\n    side: a\n",
        )
        config = load_config(path)
        assert config.decks.mode == "skewed"
        assert config.decks.skew.side == "A"

    def test_output_dir_is_path(self, tmp_path):
        path = _write(tmp_path, "tournament:\n  name: o\n  seed: 1\noutput_dir: runs/x\n")
        assert load_config(path).output_dir == Path("runs/x")

    def test_missing_tournament_section(self, tmp_path):
        with pytest.raises(KeyError):
            load_config(_write(tmp_path, "backend:\n  provider: mock\n"))


class TestBackendConfig:
    def test_defaults(self):
        bc = BackendConfig()
        assert bc.provider == "http"
        assert bc.timeout_s is None
        assert bc.plies_per_match == 36
