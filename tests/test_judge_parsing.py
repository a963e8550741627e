"""Tests for judge_parsing module."""

import pytest

from modbatch.moderation.judge_parsing import JudgeReplyError, candidate_payloads, parse_violations


class TestParseViolations:
    """Tests for parse_violations."""

    def test_fenced_block_inside_prose(self):
        reply = 'Here you go:\n```json\n[{"id":"m1","reason":"spam","mute":60}]\n```'

        records = parse_violations(reply)

        assert len(records) == 1
        assert records[0].source_message_ids == ["m1"]
        assert records[0].reason == "spam"
        assert records[0].action_magnitude == 60
        assert records[0].mute_seconds == 60

    def test_bare_array(self):
        records = parse_violations('[{"ids": ["a", "b"], "userId": "42", "reason": "flood"}]')

        assert records[0].source_message_ids == ["a", "b"]
        assert records[0].subject_user_id == "42"
        assert records[0].action_magnitude == 0

    def test_object_wrapping_violations(self):
        records = parse_violations('{"violations": [{"id": "m3", "mute": 120}]}')
        assert records[0].source_message_ids == ["m3"]
        assert records[0].mute_seconds == 120

    def test_object_wrapping_results(self):
        records = parse_violations('{"results": [{"id": 7}]}')
        assert records[0].source_message_ids == ["7"]

    def test_array_embedded_in_prose_without_fence(self):
        reply = 'Analysis done. [{"id": "m2", "reason": "insult"}] Let me know.'
        records = parse_violations(reply)
        assert records[0].source_message_ids == ["m2"]

    def test_empty_array_means_no_violations(self):
        assert parse_violations("[]") == []
        assert parse_violations("```json\n[]\n```") == []

    @pytest.mark.parametrize("reply", ["", "   ", None])
    def test_empty_reply_raises(self, reply):
        with pytest.raises(JudgeReplyError):
            parse_violations(reply)

    @pytest.mark.parametrize(
        "reply",
        [
            "Everything looks fine to me.",
            '{"status": "ok"}',
            "[not json at all]",
        ],
    )
    def test_unusable_reply_raises(self, reply):
        with pytest.raises(JudgeReplyError):
            parse_violations(reply)

    def test_malformed_entries_are_skipped(self):
        reply = '[{"id": "m1"}, {"reason": "no id"}, "junk", {"id": "m2", "mute": "long"}, {"ids": []}]'
        records = parse_violations(reply)
        assert [r.source_message_ids for r in records] == [["m1"]]

    def test_kick_flag_requests_removal(self):
        records = parse_violations('[{"id": "m1", "mute": 60, "kick": true}]')
        assert records[0].action_magnitude == -1
        assert records[0].is_removal
        assert records[0].mute_seconds == 0

    def test_negative_mute_requests_removal(self):
        records = parse_violations('[{"id": "m1", "mute": -1}]')
        assert records[0].is_removal

    def test_duplicate_and_blank_ids_are_collapsed(self):
        records = parse_violations('[{"ids": ["m1", " m1 ", "", "m2"]}]')
        assert records[0].source_message_ids == ["m1", "m2"]

    def test_entry_with_only_blank_ids_is_dropped(self):
        assert parse_violations('[{"id": "  "}]') == []

    @pytest.mark.parametrize("bad_mute", ["NaN", "Infinity", "-Infinity", "1e400"])
    def test_non_finite_mute_skips_only_that_entry(self, bad_mute):
        reply = f'[{{"id": "m1", "reason": "spam", "mute": 60}}, {{"id": "m2", "reason": "x", "mute": {bad_mute}}}]'

        records = parse_violations(reply)

        assert [r.source_message_ids for r in records] == [["m1"]]
        assert records[0].mute_seconds == 60

    def test_kick_flag_wins_over_non_finite_mute(self):
        records = parse_violations('[{"id": "m1", "mute": NaN, "kick": true}]')
        assert records[0].is_removal

    def test_fractional_mute_is_truncated(self):
        records = parse_violations('[{"id": "m1", "mute": 90.7}]')
        assert records[0].action_magnitude == 90


class TestCandidatePayloads:
    """Tests for candidate_payloads."""

    def test_fenced_block_comes_first(self):
        reply = 'x {"a": 1} ```json\n[1]\n```'
        assert candidate_payloads(reply)[0] == "[1]"

    def test_raw_reply_is_last_and_duplicates_removed(self):
        candidates = candidate_payloads("[1, 2]")
        assert candidates == ["[1, 2]"]

    def test_container_opening_first_is_preferred(self):
        reply = 'note {"violations": [{"id": "m1"}]} end'
        candidates = candidate_payloads(reply)
        assert candidates[0] == '{"violations": [{"id": "m1"}]}'
        assert candidates[1] == '[{"id": "m1"}]'
        assert candidates[-1] == reply
