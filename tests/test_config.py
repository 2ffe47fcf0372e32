"""
Tests for sidekick configuration.
"""

import logging

import pytest
from pydantic import ValidationError

from statblock_sidekick.config import SidekickConfig, load_config
from statblock_sidekick.logutils import configure_logging, logger


class TestSidekickConfig:

    def test_defaults(self) -> None:
        config = SidekickConfig()
        assert config.ability_score_cap == 20
        assert config.attacker_bonus == 2
        assert config.improved_defense_bonus == 1
        assert config.hp_method == "average"
        assert config.log_level == "INFO"

    def test_invalid_hp_method(self) -> None:
        with pytest.raises(ValidationError):
            SidekickConfig(hp_method="max")

    def test_cap_bounds(self) -> None:
        with pytest.raises(ValidationError):
            SidekickConfig(ability_score_cap=31)


class TestLoadConfig:

    def test_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("SIDEKICK_ABILITY_SCORE_CAP", "18")
        monkeypatch.setenv("SIDEKICK_HP_METHOD", "roll")
        config = load_config(dotenv=False, setup_logging=False)
        assert config.ability_score_cap == 18
        assert config.hp_method == "roll"
        assert config.attacker_bonus == 2

    def test_empty_environment(self, monkeypatch) -> None:
        for name in SidekickConfig.model_fields:
            monkeypatch.delenv(f"SIDEKICK_{name.upper()}", raising=False)
        assert load_config(dotenv=False, setup_logging=False) == SidekickConfig()

    def test_invalid_value(self, monkeypatch) -> None:
        monkeypatch.setenv("SIDEKICK_ATTACKER_BONUS", "lots")
        with pytest.raises(ValidationError):
            load_config(dotenv=False, setup_logging=False)

    def test_dotenv_file(self, monkeypatch, tmp_path) -> None:
        monkeypatch.delenv("SIDEKICK_IMPROVED_DEFENSE_BONUS", raising=False)
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".env").write_text("SIDEKICK_IMPROVED_DEFENSE_BONUS=2\n", encoding="utf-8")
        try:
            assert load_config(setup_logging=False).improved_defense_bonus == 2
        finally:
            monkeypatch.delenv("SIDEKICK_IMPROVED_DEFENSE_BONUS", raising=False)


    def test_log_level_applied(self, monkeypatch) -> None:
        monkeypatch.setenv("SIDEKICK_LOG_LEVEL", "warning")
        previous = logger.level
        try:
            config = load_config(dotenv=False)
            assert config.log_level == "WARNING"
            assert logger.level == logging.WARNING
        finally:
            logger.setLevel(previous)

    def test_log_level_left_alone(self, monkeypatch) -> None:
        monkeypatch.setenv("SIDEKICK_LOG_LEVEL", "ERROR")
        previous = logger.level
        load_config(dotenv=False, setup_logging=False)
        assert logger.level == previous

    def test_invalid_log_level(self) -> None:
        with pytest.raises(ValidationError):
            SidekickConfig(log_level="chatty")


class TestConfigureLogging:

    def test_sets_level(self) -> None:
        previous = logger.level
        try:
            configure_logging("debug")
            assert logger.level == logging.DEBUG
        finally:
            logger.setLevel(previous)
