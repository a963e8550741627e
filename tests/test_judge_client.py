"""Tests for judge_client module."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from modbatch.configuration.settings import JudgeSettings
from modbatch.moderation.judge_client import JudgeClient, RetryState


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def make_openai(*replies):
    create = AsyncMock(side_effect=list(replies))
    return SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(create=create)),
        close=AsyncMock(),
    )


class FakeClock:
    """Manual clock whose sleep advances time instead of blocking."""

    def __init__(self, now: float = 1000.0):
        self.now = now
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def settings():
    return JudgeSettings({
        "endpoint": "https://judge.example/v1/",
        "api_key": "sk-test",
        "model": "judge-model",
        "rules": "No spam.",
        "retry_base_delay": 20,
        "retry_increment": 10,
    })


def make_client(settings, openai_client, clock, retry_state=None):
    return JudgeClient(
        settings,
        client=openai_client,
        retry_state=retry_state,
        clock=clock,
        sleep=clock.sleep,
    )


@pytest.mark.asyncio
async def test_returns_parsed_violations(settings, make_message):
    clock = FakeClock()
    openai_client = make_openai(completion('[{"id": "m1", "mute": 60}]'))
    judge = make_client(settings, openai_client, clock)

    violations = await judge.analyze([make_message()])

    assert [v.source_message_ids for v in violations] == [["m1"]]
    assert clock.sleeps == []
    call = openai_client.chat.completions.create.await_args
    assert call.kwargs["model"] == "judge-model"


@pytest.mark.asyncio
async def test_unparsable_reply_is_retried_after_backoff(settings, make_message):
    clock = FakeClock()
    openai_client = make_openai(
        completion("I think message one is rude."),
        completion('[{"id": "m1", "mute": 60}]'),
    )
    judge = make_client(settings, openai_client, clock)

    violations = await judge.analyze([make_message()])

    assert clock.sleeps == [30.0]
    assert violations[0].mute_seconds == 60
    assert openai_client.chat.completions.create.await_count == 2


@pytest.mark.asyncio
async def test_delay_grows_with_each_failed_attempt(settings, make_message):
    clock = FakeClock()
    openai_client = make_openai(
        TimeoutError("request timed out"),
        ConnectionError("connection reset"),
        completion(""),
        completion("[]"),
    )
    judge = make_client(settings, openai_client, clock)

    violations = await judge.analyze([make_message()])

    assert violations == []
    assert clock.sleeps == [30.0, 40.0, 50.0]


@pytest.mark.asyncio
async def test_success_resets_shared_gate(settings, make_message):
    clock = FakeClock()
    state = RetryState()
    judge = make_client(settings, make_openai(RuntimeError("boom"), completion("[]")), clock, state)

    await judge.analyze([make_message()])

    assert state.next_allowed_attempt_at == clock.now


@pytest.mark.asyncio
async def test_shared_gate_delays_other_batches(settings, make_message):
    clock = FakeClock(now=1000.0)
    state = RetryState(next_allowed_attempt_at=1025.0)
    first = make_client(settings, make_openai(completion("[]")), clock, state)
    second = make_client(settings, make_openai(completion("[]")), clock, state)

    assert first.retry_state is second.retry_state
    await first.analyze([make_message()])

    assert clock.sleeps == [25.0]


@pytest.mark.asyncio
async def test_empty_batch_is_not_sent(settings):
    clock = FakeClock()
    openai_client = make_openai()
    judge = make_client(settings, openai_client, clock)

    assert await judge.analyze([]) == []
    openai_client.chat.completions.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_response_without_choices_is_retried(settings, make_message):
    clock = FakeClock()
    openai_client = make_openai(SimpleNamespace(choices=[]), completion("[]"))
    judge = make_client(settings, openai_client, clock)

    assert await judge.analyze([make_message()]) == []
    assert clock.sleeps == [30.0]


def test_build_messages_serializes_batch(settings, make_message):
    judge = make_client(settings, make_openai(), FakeClock())
    batch = [make_message(text="héllo"), make_message(user_id="u2", text="bye")]

    messages = judge.build_messages(batch)

    assert messages[0]["role"] == "system"
    assert "<rules>No spam.</rules>" in messages[0]["content"]
    assert messages[1]["role"] == "user"
    assert "héllo" in messages[1]["content"]
    assert json.loads(messages[1]["content"]) == [
        {"id": "m1", "guildId": "g1", "userId": "u1", "content": [{"text": "héllo"}]},
        {"id": "m2", "guildId": "g1", "userId": "u2", "content": [{"text": "bye"}]},
    ]


@pytest.mark.asyncio
async def test_close_releases_http_client(settings):
    openai_client = make_openai()
    judge = make_client(settings, openai_client, FakeClock())

    await judge.close()

    openai_client.close.assert_awaited_once()
