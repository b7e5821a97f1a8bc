"""Built-in system prompts for the DeskPilot orchestrator.

Modular prompt system: each section is a function that returns a string.
Sections are composed in build_system_prompt() from the live tool catalog
and the session's stored preferences.
"""

from typing import Dict, Iterable, List, Optional

from ..bridge.models import ToolInfo
from ..constants import DEFAULT_AGENT_NAME, HIDDEN_TOOLS

# Tool families documented in the quick reference; anything else with an
# underscore is an extension command and is listed with its arguments.
CORE_TOOL_PREFIXES = (
    "music_", "volume_", "calendar_", "reminders_", "battery_", "wifi_",
    "storage_", "running_", "front_", "brightness_", "dark_mode_", "dnd_",
    "lock_", "sleep_", "notes_", "finder_", "shortcut_", "browser_",
    "clipboard_", "search_",
)


# ---------------------------------------------------------------------------
# Section renderers
# ---------------------------------------------------------------------------

def render_preamble(agent_name: str = DEFAULT_AGENT_NAME) -> str:
    return (
        f"You are {agent_name}, a personal AI assistant that controls a Mac remotely. "
        "Be helpful and concise."
    )


def render_preferences(preferences: Optional[Dict[str, str]] = None) -> str:
    lines = [f"- {k}: {v}" for k, v in (preferences or {}).items()]
    return "USER PREFERENCES:\n" + ("\n".join(lines) or "None")


def is_core_tool(tool: ToolInfo) -> bool:
    return "_" not in tool.name or tool.name.startswith(CORE_TOOL_PREFIXES)


def _render_extension(tool: ToolInfo) -> str:
    schema = tool.input_schema or {}
    props = schema.get("properties") or {}
    required = schema.get("required") or []
    args = ", ".join(
        f"{name}{'*' if name in required else ''}: {(spec or {}).get('description') or name}"
        for name, spec in props.items()
        if name != "text"
    )
    return f"- {tool.name} ({args})" if args else f"- {tool.name}"


def render_tools(tools: Iterable[ToolInfo], hidden: Iterable[str] = HIDDEN_TOOLS) -> str:
    """List the catalog, minus tools the orchestrator drives itself."""
    hidden = set(hidden)
    visible = [t for t in tools if t.name not in hidden]
    core = [t for t in visible if is_core_tool(t)]
    extensions = [t for t in visible if not is_core_tool(t)]

    text = "AVAILABLE TOOLS:\n" + "\n".join(f"- {t.name}: {t.description}" for t in core)
    if extensions:
        text += "\n\nEXTENSIONS (use these exact tool names):\n"
        text += "\n".join(_render_extension(t) for t in extensions)
    return text


def render_quick_reference() -> str:
    return """
===== QUICK REFERENCE =====

MUSIC: music_play, music_pause, music_next, music_previous, music_current
VOLUME: volume_up, volume_down, volume_set, volume_mute, volume_get
MESSAGING (iMessage/SMS):
  The ONLY way to send messages is the search_contacts tool.

  Flow:
  1. If the user uses a nickname (wife, mom, boss), check USER PREFERENCES for the real name
  2. Call search_contacts with the real name AND the message to send
  3. The system handles confirmation and sending

  Rewrite the message from the sender's perspective:
  - "tell her I love her" -> "I love you"
  - "let him know I'm running late" -> "I'm running late"

  Example: {"tool": "search_contacts", "args": {"query": "(name)", "message": "I love you"}}
CALENDAR: calendar_today, calendar_upcoming, calendar_next, calendar_create
REMINDERS: reminders_list, reminders_create, reminders_complete
SYSTEM: battery_status, wifi_status, storage_status, running_apps, front_app
DISPLAY: brightness_set, dark_mode_toggle, dark_mode_status, dnd_toggle
SCREEN: lock_screen, sleep_display, sleep_mac
NOTES: notes_list, notes_search, notes_create, notes_read, notes_append
FILES: finder_search, finder_downloads, finder_desktop, finder_reveal, finder_trash
SHORTCUTS: shortcut_run, shortcut_list
BROWSER: browser_url, browser_tabs
APPS: open_app, open_url
OTHER: screenshot, notify, say, clipboard_get, clipboard_set
""".strip()


def render_action_format() -> str:
    return """
===== ACTION FORMAT =====

```action
{"tool": "music_play", "args": {"query": "Resonance"}}
```

Multiple actions use separate blocks:
```action
{"tool": "open_app", "args": {"name": "Chrome"}}
```
```action
{"tool": "battery_status", "args": {}}
```
""".strip()


def render_scheduling() -> str:
    return """
===== SCHEDULING =====

For future tasks, use schedule blocks (not action blocks):

```schedule
{"when": "in 5 minutes", "tool": "notify", "args": {"message": "Hi"}, "description": "Reminder"}
```

```schedule
{"when": "every day at 5pm", "tool": "music_play", "args": {"query": "chill"}, "description": "Daily music"}
```

Supported: "in X minutes/hours", "every day at Xpm", "every morning/evening", "every hour", "every N hours", "every weekday at X", cron syntax
""".strip()


def render_preference_format() -> str:
    return """
===== PREFERENCES =====
```preference
{"key": "name", "value": "value"}
```

Be brief. Don't explain - just do it.
""".strip()


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------

def build_system_prompt(
    tools: List[ToolInfo],
    preferences: Optional[Dict[str, str]] = None,
    agent_name: str = DEFAULT_AGENT_NAME,
    hidden_tools: Iterable[str] = HIDDEN_TOOLS,
) -> str:
    """Build the full system prompt from modular sections."""
    sections = [
        render_preamble(agent_name),
        render_preferences(preferences),
        render_tools(tools, hidden=hidden_tools),
        render_quick_reference(),
        render_action_format(),
        render_scheduling(),
        render_preference_format(),
    ]
    return "\n\n".join(sections)

