"""Tests for app_configuration and settings modules."""

import pytest

from modbatch.configuration.app_configuration import AppConfig
from modbatch.configuration.settings import BatchSettings, JudgeSettings, ModerationSettings
from modbatch.datatypes.violation_datatypes import ActionType


def write_config(tmp_path, text):
    path = tmp_path / "app_config.yml"
    path.write_text(text, encoding="utf-8")
    return path


def test_loads_sections_from_yaml(tmp_path):
    path = write_config(tmp_path, """
judge:
  endpoint: https://judge.example/v1/
  api_key: sk-file
  model: judge-model
  rules: Be nice.
batching:
  max_batch_size: 16
  inactivity_timeout: 5
  max_batch_wait_time: 30
moderation:
  actions: [recall, mute, forward]
  target: "discord:999"
  whitelist: [1, "2"]
""")

    config = AppConfig(path)

    assert config.judge.endpoint == "https://judge.example/v1"
    assert config.judge.model == "judge-model"
    assert config.batching.max_batch_size == 16
    assert config.batching.inactivity_timeout == 5.0
    assert config.batching.max_batch_wait_time == 30.0
    assert config.moderation.actions == frozenset({ActionType.RECALL, ActionType.MUTE, ActionType.FORWARD})
    assert config.moderation.target == "discord:999"
    assert config.moderation.whitelist == frozenset({"1", "2"})
    assert config.get("judge")["rules"] == "Be nice."


def test_missing_file_yields_defaults(tmp_path):
    config = AppConfig(tmp_path / "missing.yml")

    assert config.data == {}
    assert config.batching.max_batch_size == 128
    assert config.batching.inactivity_timeout == 60.0
    assert config.batching.max_batch_wait_time == 300.0
    assert config.moderation.actions == frozenset()
    assert config.moderation.forward_raw is False


def test_non_mapping_yaml_is_ignored(tmp_path):
    config = AppConfig(write_config(tmp_path, "- just\n- a list\n"))
    assert config.data == {}


def test_non_mapping_section_is_ignored(tmp_path):
    config = AppConfig(write_config(tmp_path, "batching: 12\n"))
    assert config.batching.max_batch_size == 128


def test_reload_picks_up_changes(tmp_path):
    path = write_config(tmp_path, "batching:\n  max_batch_size: 4\n")
    config = AppConfig(path)
    path.write_text("batching:\n  max_batch_size: 8\n", encoding="utf-8")

    config.reload()

    assert config.batching.max_batch_size == 8


@pytest.mark.parametrize(
    "data, expected",
    [
        ({"max_batch_size": 0}, (1, 60.0, 300.0)),
        ({"max_batch_size": 5000}, (1024, 60.0, 300.0)),
        ({"inactivity_timeout": 0}, (128, 1.0, 300.0)),
        ({"max_batch_wait_time": 1}, (128, 60.0, 10.0)),
        ({"max_batch_wait_time": 99999}, (128, 60.0, 3600.0)),
        ({"max_batch_size": "lots"}, (128, 60.0, 300.0)),
    ],
)
def test_batch_settings_are_clamped(data, expected):
    settings = BatchSettings(data)
    assert (settings.max_batch_size, settings.inactivity_timeout, settings.max_batch_wait_time) == expected


def test_unknown_actions_are_ignored():
    settings = ModerationSettings({"actions": ["Recall", "ban", " kick "]})

    assert settings.actions == frozenset({ActionType.RECALL, ActionType.KICK})


def test_judge_defaults():
    settings = JudgeSettings()

    assert settings.request_timeout == 600.0
    assert settings.retry_base_delay == 20.0
    assert settings.retry_increment == 10.0
    assert settings.debug is False


def test_api_key_prefers_environment(monkeypatch):
    settings = JudgeSettings({"api_key": "sk-file"})

    monkeypatch.delenv("JUDGE_API_KEY", raising=False)
    assert settings.api_key == "sk-file"

    monkeypatch.setenv("JUDGE_API_KEY", "sk-env")
    assert settings.api_key == "sk-env"


def test_system_prompt_embeds_rules_verbatim():
    settings = JudgeSettings({"rules": "1. No {braces} games.\n2. No spam."})

    prompt = settings.system_prompt

    assert "1. No {braces} games.\n2. No spam." in prompt
    assert "{RULES}" not in prompt


def test_custom_system_prompt_template():
    settings = JudgeSettings({"system_prompt": "Rules: {RULES}", "rules": "none"})
    assert settings.system_prompt == "Rules: none"
