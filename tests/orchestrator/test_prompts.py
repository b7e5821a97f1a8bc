"""Tests for deskpilot.orchestrator.prompts — system prompt composition"""

from deskpilot.bridge.models import ToolInfo
from deskpilot.orchestrator.prompts import (
    build_system_prompt,
    is_core_tool,
    render_preferences,
    render_tools,
)

TOOLS = [
    ToolInfo(name="battery_status", description="Battery level"),
    ToolInfo(name="screenshot", description="Take a screenshot"),
    ToolInfo(name="send_imessage", description="Send a text"),
    ToolInfo(
        name="jira_create_issue",
        description="Create an issue",
        input_schema={
            "type": "object",
            "properties": {
                "title": {"description": "Issue title"},
                "project": {},
                "text": {"description": "ignored"},
            },
            "required": ["title"],
        },
    ),
]


class TestSections:

    def test_preferences(self):
        assert render_preferences({}) == "USER PREFERENCES:\nNone"
        assert render_preferences({"wife": "Jane"}) == "USER PREFERENCES:\n- wife: Jane"

    def test_core_detection(self):
        assert is_core_tool(TOOLS[0])
        assert is_core_tool(TOOLS[1])
        assert not is_core_tool(TOOLS[3])

    def test_tools_hide_send_and_list_extensions(self):
        text = render_tools(TOOLS)
        assert "- battery_status: Battery level" in text
        assert "send_imessage" not in text
        assert "EXTENSIONS (use these exact tool names):" in text
        assert "- jira_create_issue (title*: Issue title, project: project)" in text

    def test_no_extensions_section_without_extensions(self):
        assert "EXTENSIONS" not in render_tools(TOOLS[:2])


class TestBuildSystemPrompt:

    def test_sections_in_order(self):
        prompt = build_system_prompt(TOOLS, {"name": "Sam"}, agent_name="JARVIS")
        assert prompt.startswith("You are JARVIS, a personal AI assistant that controls a Mac remotely.")
        order = [
            prompt.index("USER PREFERENCES"),
            prompt.index("AVAILABLE TOOLS"),
            prompt.index("QUICK REFERENCE"),
            prompt.index("ACTION FORMAT"),
            prompt.index("SCHEDULING"),
            prompt.index("===== PREFERENCES ====="),
        ]
        assert order == sorted(order)
        assert "- name: Sam" in prompt

    def test_custom_hidden_tools(self):
        prompt = build_system_prompt(TOOLS, hidden_tools=["battery_status"])
        assert "- send_imessage" in prompt.split("EXTENSIONS")[1]
        assert "- send_imessage: Send a text" not in prompt
        assert "- battery_status: Battery level" not in prompt
