"""Tests for deskpilot.orchestrator.response_parser — directive extraction"""

from deskpilot.orchestrator.response_parser import (
    ActionDirective,
    PreferenceDirective,
    ScheduleDirective,
    parse_response,
)


class TestActions:

    def test_single_action(self):
        parsed = parse_response(
            'Checking.\n```action\n{"tool": "battery_status", "args": {}}\n```'
        )
        assert parsed.text == "Checking."
        assert parsed.actions == [ActionDirective(tool="battery_status", args={})]

    def test_multiple_actions_in_order(self):
        parsed = parse_response(
            '```action\n{"tool": "open_app", "args": {"name": "Chrome"}}\n```\n'
            '```action\n{"tool": "battery_status"}\n```'
        )
        assert [a.tool for a in parsed.actions] == ["open_app", "battery_status"]
        assert parsed.actions[1].args == {}

    def test_block_without_newlines(self):
        parsed = parse_response('```action{"tool": "music_pause", "args": {}}```')
        assert [a.tool for a in parsed.actions] == ["music_pause"]


class TestScheduleAndPreference:

    def test_schedule(self):
        parsed = parse_response(
            'Will do.\n```schedule\n{"when": "every day at 5pm", "tool": "music_play", '
            '"args": {"query": "chill"}, "description": "Daily music"}\n```'
        )
        assert parsed.schedule == ScheduleDirective(
            when="every day at 5pm", tool="music_play", args={"query": "chill"}, description="Daily music"
        )
        assert parsed.text == "Will do."

    def test_first_well_formed_schedule_wins(self):
        parsed = parse_response(
            '```schedule\n{"tool": "notify"}\n```\n'
            '```schedule\n{"when": "in 1 minute", "tool": "notify"}\n```\n'
            '```schedule\n{"when": "in 2 minutes", "tool": "notify"}\n```'
        )
        assert parsed.schedule.when == "in 1 minute"
        assert parsed.blocks[0] is None

    def test_preference(self):
        parsed = parse_response('Noted.\n```preference\n{"key": "wife", "value": "Jane Doe"}\n```')
        assert parsed.preference == PreferenceDirective(key="wife", value="Jane Doe")

    def test_preference_value_is_stringified(self):
        parsed = parse_response('```preference\n{"key": "volume", "value": 40}\n```')
        assert parsed.preference.value == "40"


class TestTolerance:

    def test_malformed_blocks_dropped_individually(self):
        parsed = parse_response(
            "Here you go.\n"
            "```action\n{not json}\n```\n"
            '```action\n{"args": {}}\n```\n'
            '```action\n{"tool": "notify", "args": "nope"}\n```\n'
            '```action\n{"tool": "battery_status", "args": {}}\n```'
        )
        assert [a.tool for a in parsed.actions] == ["battery_status"]
        assert parsed.blocks[:3] == [None, None, None]
        assert isinstance(parsed.blocks[3], ActionDirective)
        assert parsed.text == "Here you go."

    def test_all_blocks_stripped_from_text(self):
        parsed = parse_response(
            'A\n```action\n{"tool": "x"}\n```\nB\n```schedule\nbroken\n```\nC\n'
            '```preference\n{"key": "k", "value": "v"}\n```'
        )
        assert "```" not in parsed.text
        assert parsed.text.split() == ["A", "B", "C"]

    def test_empty_text_becomes_done(self):
        assert parse_response('```action\n{"tool": "lock_screen"}\n```').text == "Done!"
        assert parse_response("").text == "Done!"
        assert parse_response(None).text == "Done!"

    def test_other_fences_are_left_alone(self):
        parsed = parse_response("Run:\n```bash\nls\n```")
        assert parsed.actions == []
        assert "```bash" in parsed.text

    def test_plain_text(self):
        parsed = parse_response("Hello there")
        assert parsed.text == "Hello there"
        assert parsed.actions == [] and parsed.schedule is None and parsed.preference is None
        assert parsed.blocks == []
