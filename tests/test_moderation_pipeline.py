"""Tests for moderation_pipeline module."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from fakes import FakeBot
from modbatch.configuration.app_configuration import AppConfig
from modbatch.configuration.settings import JudgeSettings, ModerationSettings
from modbatch.datatypes.message_datatypes import InboundEvent, RawElement
from modbatch.datatypes.violation_datatypes import ViolationRecord
from modbatch.moderation.judge_client import JudgeClient, RetryState
from modbatch.moderation.moderation_pipeline import ModerationPipeline
from modbatch.moderation.violation_dispatcher import ViolationDispatcher
from modbatch.platforms.platform_bot import BotRegistry


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def make_event(message_id, text, user_id="42"):
    return InboundEvent(
        user_id=user_id,
        user_name="alice",
        channel_id="discord:100",
        guild_id="g1",
        message_id=message_id,
        elements=[RawElement("text", {"content": text})],
    )


@pytest.mark.asyncio
async def test_process_batch_applies_violations(make_message):
    judge = SimpleNamespace(analyze=AsyncMock(return_value=[ViolationRecord(["m1"])]))
    dispatcher = SimpleNamespace(apply=AsyncMock())
    pipeline = ModerationPipeline(judge, dispatcher, ModerationSettings(), 10, 60, 300)
    batch = [make_message("m1")]

    await pipeline.process_batch(batch)

    judge.analyze.assert_awaited_once_with(batch)
    dispatcher.apply.assert_awaited_once_with([ViolationRecord(["m1"])], batch)


@pytest.mark.asyncio
async def test_process_batch_skips_dispatch_without_violations(make_message):
    judge = SimpleNamespace(analyze=AsyncMock(return_value=[]))
    dispatcher = SimpleNamespace(apply=AsyncMock())
    pipeline = ModerationPipeline(judge, dispatcher, ModerationSettings(), 10, 60, 300)

    await pipeline.process_batch([make_message()])

    dispatcher.apply.assert_not_awaited()


@pytest.mark.asyncio
async def test_events_flow_from_listener_to_platform_actions():
    openai_client = SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(create=AsyncMock(return_value=completion(
            '```json\n[{"ids": ["2", "3"], "userId": "42", "reason": "spam", "mute": 60}]\n```'
        )))),
        close=AsyncMock(),
    )
    judge = JudgeClient(JudgeSettings({"model": "m", "rules": "No spam."}), client=openai_client)
    bot = FakeBot()
    moderation = ModerationSettings({"actions": ["recall", "mute", "forward"], "target": "discord:999"})
    pipeline = ModerationPipeline(
        judge,
        ViolationDispatcher(BotRegistry([bot]), moderation),
        moderation,
        max_batch_size=10,
        inactivity_timeout=60,
        max_batch_wait_time=300,
    )

    for message_id, text in [("1", "hi"), ("2", "buy now"), ("3", "buy now!!")]:
        assert pipeline.controller.handle_event(make_event(message_id, text))
    await pipeline.shutdown()

    assert [call[0] for call in bot.calls] == ["mute", "delete", "delete", "broadcast"]
    assert bot.calls[0] == ("mute", "g1", "42", 60_000, "spam")
    assert openai_client.chat.completions.create.await_count == 1
    openai_client.close.assert_awaited_once()
    assert not pipeline.controller.handle_event(make_event("4", "late"))


def test_from_config_builds_components(tmp_path):
    path = tmp_path / "app_config.yml"
    path.write_text(
        "judge:\n  api_key: sk-test\n  model: judge-model\n"
        "batching:\n  max_batch_size: 8\n",
        encoding="utf-8",
    )
    state = RetryState()

    pipeline = ModerationPipeline.from_config(AppConfig(path), BotRegistry([FakeBot()]), retry_state=state)

    assert pipeline.judge.retry_state is state
    assert pipeline.accumulator._max_batch_size == 8
    assert pipeline.controller.closing is False
