"""
Tests for the engine configuration.
"""

import json
import logging

import pytest
from pydantic import ValidationError as PydanticValidationError

from gradebook.common import config as config_module
from gradebook.common.config import (
    ConfigLoader, EngineConfig, SamplerConfig, apply_logging_config, get_config, reload_config
)
from gradebook.common.logger import JsonFormatter


@pytest.fixture
def fresh_config(monkeypatch):
    """Isolate the global configuration; the previous one is restored afterwards."""
    monkeypatch.setattr(config_module, "_config", None)
    monkeypatch.setattr(config_module, "config_loader", ConfigLoader())
    monkeypatch.delenv("GRADEBOOK_CONFIG_PATH", raising=False)
    return monkeypatch


class TestEngineConfig:
    """Tests for defaults, files and environment overrides."""

    def test_defaults(self, fresh_config):
        config = get_config()

        assert config.sampler.default_question_points == 10
        assert config.sampler.default_total_points == 200
        assert config.timer.warning_seconds == 300
        assert config.timer.critical_seconds == 60
        assert config.reporting.low_attendance_percent == 70
        assert get_config() is config

    def test_environment_override(self, fresh_config):
        fresh_config.setenv("GRADEBOOK_SAMPLER__DEFAULT_QUESTION_POINTS", "5")
        fresh_config.setenv("GRADEBOOK_ENVIRONMENT__ENV", "testing")

        config = reload_config()

        assert config.sampler.default_question_points == 5
        assert config.is_testing

    def test_yaml_file(self, fresh_config, tmp_path):
        path = tmp_path / "gradebook.yaml"
        path.write_text("timer:\n  warning_seconds: 120\nreporting:\n  low_score_percent: 40\n")

        config = reload_config(str(path))

        assert config.timer.warning_seconds == 120
        assert config.reporting.low_score_percent == 40
        assert config.timer.critical_seconds == 60

    def test_environment_wins_over_file(self, fresh_config, tmp_path):
        path = tmp_path / "gradebook.json"
        path.write_text(json.dumps({"sampler": {"default_question_count": 20}}))
        fresh_config.setenv("GRADEBOOK_SAMPLER__DEFAULT_QUESTION_COUNT", "15")

        assert reload_config(str(path)).sampler.default_question_count == 15

    def test_missing_file_falls_back_to_defaults(self, fresh_config, tmp_path):
        config = reload_config(str(tmp_path / "missing.yaml"))
        assert config.sampler.default_question_count == 10

    def test_difficulty_mix_must_sum_to_100(self):
        with pytest.raises(PydanticValidationError):
            SamplerConfig(default_easy_percent=50, default_medium_percent=50, default_hard_percent=50)

    def test_invalid_log_level(self):
        with pytest.raises(PydanticValidationError):
            EngineConfig(logging={"level": "LOUD"})

    def test_apply_logging_config(self):
        logger = apply_logging_config(EngineConfig(logging={"level": "debug", "use_json": True}))
        try:
            assert logger.name == "gradebook"
            assert logger.level == logging.DEBUG
            assert isinstance(logger.handlers[0].formatter, JsonFormatter)
        finally:
            apply_logging_config(EngineConfig())
