"""Tests for environment-driven configuration"""

import pytest

from meetsync.utils.config import Config, SchedulingConfig, validate_scheduling_config

from conftest import build_settings


def test_scheduling_section_reads_environment(monkeypatch):
    monkeypatch.setenv("SCHEDULING_TIMEZONE", "Europe/Berlin")
    monkeypatch.setenv("WORKDAY_START_HOUR", "8")
    monkeypatch.setenv("SLOT_GRANULARITY_MINUTES", "30")

    scheduling = SchedulingConfig.from_env()

    assert scheduling.workday_start_hour == 8
    assert scheduling.slot_granularity_minutes == 30
    assert scheduling.tzinfo.zone == "Europe/Berlin"


def test_valid_policy_has_no_problems():
    assert validate_scheduling_config(build_settings()) == []


@pytest.mark.parametrize("overrides,problem", [
    ({"timezone": "Mars/Olympus"}, "SCHEDULING_TIMEZONE"),
    ({"workday_start_hour": 17, "workday_end_hour": 9}, "WORKDAY_START_HOUR"),
    ({"default_meeting_hour": 8}, "DEFAULT_MEETING_HOUR"),
    ({"slot_granularity_minutes": 0}, "SLOT_GRANULARITY_MINUTES"),
    ({"request_timeout_seconds": 0}, "Timeouts"),
])
def test_invalid_policy_is_reported(overrides, problem):
    errors = validate_scheduling_config(build_settings(**overrides))

    assert any(problem in error for error in errors)


def test_config_rejects_invalid_environment(monkeypatch):
    monkeypatch.setenv("WORKDAY_END_HOUR", "8")

    with pytest.raises(ValueError, match="Configuration validation failed"):
        Config()


def test_log_level_is_upper_cased(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")

    assert Config().api.log_level == "DEBUG"
