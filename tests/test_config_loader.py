"""Tests for configuration loading."""

import json

import pytest

from config_loader import DEFAULT_CONFIG, get_limit, get_model, load_config


class TestLoadConfig:
    """Tests for load_config()."""

    def test_overrides_merge_over_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"limits": {"max_tune_attempts": 2}, "models": {"edit": "m"}}))

        config = load_config(str(path))

        assert config["limits"]["max_tune_attempts"] == 2
        assert config["limits"]["max_decision_attempts"] == 3
        assert config["models"]["edit"] == "m"
        assert config["models"]["tune"] == DEFAULT_CONFIG["models"]["tune"]
        assert DEFAULT_CONFIG["limits"]["max_tune_attempts"] == 4

    def test_env_var(self, tmp_path, monkeypatch):
        path = tmp_path / "tuner.json"
        path.write_text(json.dumps({"client": {"retry_count": 5}}))
        monkeypatch.setenv("RESUME_TUNER_CONFIG", str(path))

        assert load_config()["client"]["retry_count"] == 5

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "absent.json"))


class TestLookups:
    """Tests for get_limit() and get_model()."""

    def test_fall_back_to_defaults(self):
        assert get_limit({}, "max_resolutions_per_element") == 2
        assert get_model({"models": {}}, "rewrite") == DEFAULT_CONFIG["models"]["rewrite"]

    def test_configured_values_win(self):
        assert get_limit({"limits": {"max_requirements": 5}}, "max_requirements") == 5
