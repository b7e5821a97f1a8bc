"""Tests for deskpilot.orchestrator.flows — contact lookup to message"""

import pytest

from deskpilot.orchestrator.flows import (
    ContactMatch,
    build_send_pending,
    clarification_prompt,
    confirmation_prompt,
    extract_message,
    extract_phone,
    match_contact_result,
    refill_prompt,
    wants_drafted_message,
)


class TestExtraction:

    @pytest.mark.parametrize("text,expected", [
        ("John Appleseed: (555) 123-4567", "5551234567"),
        ("Jane: 555.987.6543", "5559876543"),
        ("Mom +1 555-222-3333", "+15552223333"),
    ])
    def test_extract_phone(self, text, expected):
        assert extract_phone(text) == expected

    def test_no_phone(self):
        assert extract_phone("No contacts found") is None

    @pytest.mark.parametrize("text,expected", [
        ("text John saying I'm late", "I'm late"),
        ('tell mom say "love you"', "love you"),
        ("let him know that dinner is ready", "dinner is ready"),
        ("text John", ""),
    ])
    def test_extract_message(self, text, expected):
        assert extract_message(text) == expected

    def test_wants_drafted_message(self):
        assert wants_drafted_message("write John a birthday message")
        assert wants_drafted_message("make up something nice for mom")
        assert not wants_drafted_message("text John hi")


class TestMatchContactResult:

    def test_match_uses_action_message(self):
        match = match_contact_result(
            "search_contacts", {"query": "John", "message": " hi "}, True,
            "John Appleseed: (555) 123-4567", "text John saying hello",
        )
        assert match == ContactMatch(contact="John Appleseed: (555) 123-4567", phone="5551234567", message="hi")

    def test_match_falls_back_to_user_wording(self):
        match = match_contact_result(
            "search_contacts", {"query": "John"}, True, "John: 555-123-4567", "text John saying hello",
        )
        assert match.message == "hello"

    @pytest.mark.parametrize("tool,success,result", [
        ("battery_status", True, "John: 555-123-4567"),
        ("search_contacts", False, "John: 555-123-4567"),
        ("search_contacts", True, "Error: 555-123-4567"),
        ("search_contacts", True, "John, no number"),
        ("search_contacts", True, ""),
    ])
    def test_no_match(self, tool, success, result):
        assert match_contact_result(tool, {}, success, result, "text John") is None


class TestPendingAndPrompts:

    def test_complete_pending(self):
        match = ContactMatch("John", "5551234567", "hi")
        pending = build_send_pending(match, "text John hi")
        assert pending.tool == "send_imessage"
        assert pending.args == {"to": "5551234567", "message": "hi"}
        assert pending.missing_field is None
        assert pending.context == "John"

    def test_pending_without_message_awaits_clarification(self):
        pending = build_send_pending(ContactMatch("John", "5551234567", ""), "text John")
        assert pending.missing_field == "message"

    def test_explicit_message_overrides(self):
        pending = build_send_pending(ContactMatch("John", "1", ""), "write John", "Drafted")
        assert pending.args["message"] == "Drafted"
        assert pending.missing_field is None

    def test_prompts(self):
        match = ContactMatch("John", "5551234567", "hi")
        assert confirmation_prompt(match, "hi") == 'Found: **John**\n\nSend "hi"? *(yes/no)*'
        assert confirmation_prompt(match, "hi", drafted=True) == 'Found: **John**\n\n> "hi"\n\nSend? *(yes/no)*'
        assert clarification_prompt(match) == "Found: **John**\n\nWhat message?"
        assert refill_prompt(build_send_pending(match, "")) == 'Send "hi" to 5551234567? *(yes/no)*'
