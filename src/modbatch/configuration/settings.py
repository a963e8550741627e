"""Typed accessors for the judge, batching and moderation config sections."""

import os
from typing import Any, Dict, FrozenSet, List

from modbatch.datatypes.violation_datatypes import ActionType
from modbatch.util.logger import get_logger

logger = get_logger("settings")


DEFAULT_SYSTEM_PROMPT = """<role>You are a content moderation AI with strong contextual understanding. Analyse the given conversation excerpt precisely and strictly, identify messages that break the rules, and answer only in the JSON format described below.</role>
<instructions>
1. Analyse in context: the messages are in chronological order. Judge them together, paying attention to violations formed by several consecutive messages from the same user (spam, harassment, escalating arguments), and avoid misjudging a single message out of context.
2. Reference every contributing message: when several messages of one user form a single violation, report one record whose "ids" lists all of them.
3. Explain in the reason: the "reason" field must state why the messages break the rules, and mention the context when the judgement depends on several messages.
4. Strict JSON output: the answer must be a valid JSON array and nothing else. No explanations, greetings or reasoning outside the JSON. If nothing breaks the rules, return an empty array [].
</instructions>
<input_format>A JSON array where each object is one message: [{ "id": "message id", "guildId": "group id", "userId": "user id", "content": [{"text": "..."} | {"image": "url"} | {"forward": [{"userId": "...", "userName": "...", "content": [...]}]}] }]</input_format>
<output_format>A JSON array where each object is one violation: [{ "ids": ["ids of the offending messages"], "userId": "offending user id", "reason": "why", "mute": mute seconds (optional number; a negative number removes the user from the group) }]</output_format>
<rules>{RULES}</rules>"""


def _clamp(value: Any, default: float, minimum: float, maximum: float | None = None) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number < minimum:
        return minimum
    if maximum is not None and number > maximum:
        return maximum
    return number


class JudgeSettings:
    """Typed accessors for the ``judge`` section of the application config."""

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    @property
    def endpoint(self) -> str:
        return str(self.data.get("endpoint") or "").rstrip("/")

    @property
    def api_key(self) -> str:
        """Return the API key, preferring the ``JUDGE_API_KEY`` environment variable."""
        return os.getenv("JUDGE_API_KEY") or str(self.data.get("api_key") or "")

    @property
    def model(self) -> str:
        return str(self.data.get("model") or "")

    @property
    def rules(self) -> str:
        return str(self.data.get("rules") or "")

    @property
    def system_prompt_template(self) -> str:
        return str(self.data.get("system_prompt") or DEFAULT_SYSTEM_PROMPT)

    @property
    def system_prompt(self) -> str:
        """Return the system prompt with the operator rules inserted verbatim."""
        return self.system_prompt_template.replace("{RULES}", self.rules)

    @property
    def request_timeout(self) -> float:
        return _clamp(self.data.get("request_timeout"), 600.0, 1.0)

    @property
    def retry_base_delay(self) -> float:
        return _clamp(self.data.get("retry_base_delay"), 20.0, 0.0)

    @property
    def retry_increment(self) -> float:
        return _clamp(self.data.get("retry_increment"), 10.0, 0.0)

    @property
    def debug(self) -> bool:
        return bool(self.data.get("debug", False))


class BatchSettings:
    """Typed accessors for the ``batching`` section of the application config."""

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    @property
    def max_batch_size(self) -> int:
        return int(_clamp(self.data.get("max_batch_size"), 128, 1, 1024))

    @property
    def inactivity_timeout(self) -> float:
        return _clamp(self.data.get("inactivity_timeout"), 60.0, 1.0)

    @property
    def max_batch_wait_time(self) -> float:
        return _clamp(self.data.get("max_batch_wait_time"), 300.0, 10.0, 3600.0)

    def warn_if_misconfigured(self) -> None:
        """Log a warning when the max-wait timer would always fire before inactivity."""
        if self.max_batch_wait_time < self.inactivity_timeout:
            logger.warning(
                "[SETTINGS] max_batch_wait_time (%ss) is shorter than inactivity_timeout (%ss); "
                "batches will only flush on max-wait or size",
                self.max_batch_wait_time,
                self.inactivity_timeout,
            )


class ModerationSettings:
    """Typed accessors for the ``moderation`` section of the application config."""

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    @property
    def whitelist(self) -> FrozenSet[str]:
        raw = self.data.get("whitelist") or []
        if not isinstance(raw, list):
            return frozenset()
        return frozenset(str(user_id).strip() for user_id in raw if str(user_id).strip())

    @property
    def actions(self) -> FrozenSet[ActionType]:
        raw = self.data.get("actions") or []
        if not isinstance(raw, list):
            return frozenset()
        enabled: List[ActionType] = []
        for name in raw:
            try:
                enabled.append(ActionType(str(name).strip().lower()))
            except ValueError:
                logger.warning("[SETTINGS] Ignoring unknown moderation action %r", name)
        return frozenset(enabled)

    @property
    def target(self) -> str:
        return str(self.data.get("target") or "").strip()

    @property
    def forward_raw(self) -> bool:
        return bool(self.data.get("forward_raw", False))
