"""Utilities for coercing free-form judge replies into violation records."""

from __future__ import annotations

import json
import math
import re
from typing import Any, Dict, List

import jsonschema
from jsonschema import Draft7Validator, ValidationError

from modbatch.datatypes.violation_datatypes import ViolationRecord
from modbatch.util.logger import get_logger

logger = get_logger("judge_parsing")


class JudgeReplyError(ValueError):
    """Raised when a judge reply holds no usable violation list."""


JSON_BLOCK_PATTERN = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)

# Object replies are accepted when they wrap the list under one of these keys
VIOLATION_KEYS = ("violations", "results")

ID_SCHEMA: Dict[str, Any] = {"type": ["string", "integer"]}

REPLY_SCHEMA: Dict[str, Any] = {
    "oneOf": [
        {"type": "array"},
        {
            "type": "object",
            "anyOf": [
                {"required": [key], "properties": {key: {"type": "array"}}}
                for key in VIOLATION_KEYS
            ],
        },
    ]
}

RECORD_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": ID_SCHEMA,
        "ids": {"type": "array", "items": ID_SCHEMA, "minItems": 1},
        "userId": ID_SCHEMA,
        "reason": {"type": "string"},
        "mute": {"type": "number"},
        "kick": {"type": "boolean"},
    },
    "anyOf": [{"required": ["id"]}, {"required": ["ids"]}],
}

_record_validator = Draft7Validator(RECORD_SCHEMA)


def _container_slice(reply: str, opening: str, closing: str) -> str | None:
    start = reply.find(opening)
    end = reply.rfind(closing)
    if start == -1 or end <= start:
        return None
    return reply[start : end + 1]


def candidate_payloads(reply: str) -> List[str]:
    """Return JSON candidates from a reply, most preferred first.

    The order is: the body of a fenced ```json block, the span between the
    first and last bracket (or brace) of whichever container opens first, the
    span of the other container type, and finally the raw reply.
    """
    candidates: List[str] = []

    match = JSON_BLOCK_PATTERN.search(reply)
    if match and match.group(1):
        candidates.append(match.group(1))

    containers = sorted(
        (("[", "]"), ("{", "}")),
        key=lambda pair: reply.find(pair[0]) if reply.find(pair[0]) != -1 else len(reply),
    )
    for opening, closing in containers:
        span = _container_slice(reply, opening, closing)
        if span is not None:
            candidates.append(span)

    candidates.append(reply)
    return list(dict.fromkeys(candidates))


def _load_reply_payload(reply: str) -> List[Any]:
    for candidate in candidate_payloads(reply):
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        try:
            jsonschema.validate(instance=payload, schema=REPLY_SCHEMA)
        except ValidationError:
            continue
        if isinstance(payload, list):
            return payload
        return next(payload[key] for key in VIOLATION_KEYS if isinstance(payload.get(key), list))
    raise JudgeReplyError("No JSON violation list found in judge reply")


def _coerce_record(item: Dict[str, Any]) -> ViolationRecord | None:
    raw_ids = item["ids"] if "ids" in item else [item["id"]]
    message_ids = list(dict.fromkeys(str(mid).strip() for mid in raw_ids if str(mid).strip()))
    if not message_ids:
        return None

    if item.get("kick") is True:
        magnitude = -1
    else:
        # json.loads accepts NaN, Infinity and out-of-range floats
        mute = item.get("mute") or 0
        if not math.isfinite(mute):
            logger.warning("[PARSE] Skipping violation entry with non-finite mute: %r", item)
            return None
        magnitude = int(mute)

    user_id = item.get("userId")
    return ViolationRecord(
        source_message_ids=message_ids,
        reason=str(item.get("reason", "")).strip(),
        action_magnitude=magnitude,
        subject_user_id=str(user_id) if user_id not in (None, "") else None,
    )


def parse_violations(reply: str | None) -> List[ViolationRecord]:
    """Parse a judge reply into violation records.

    Args:
        reply: Raw text content of the model reply.

    Returns:
        The violation records found in the reply; an empty list when the
        judge reported no violations.

    Raises:
        JudgeReplyError: If the reply is empty or no candidate parses as a
            violation list.
    """
    if not reply or not reply.strip():
        raise JudgeReplyError("Judge reply is empty")

    entries = _load_reply_payload(reply.strip())
    logger.debug("[PARSE] Extracted %d violation entries", len(entries))

    records: List[ViolationRecord] = []
    for item in entries:
        if not _record_validator.is_valid(item):
            logger.warning("[PARSE] Skipping malformed violation entry: %r", item)
            continue
        record = _coerce_record(item)
        if record is not None:
            records.append(record)

    return records
