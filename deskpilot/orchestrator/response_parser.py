"""
Response parser - extracts fenced directive blocks from model output.

The model embeds structured instructions in its reply as fenced blocks::

    ```action
    {"tool": "battery_status", "args": {}}
    ```

Recognised tags are ``action``, ``schedule`` and ``preference``. Each
block is parsed independently; a malformed block is dropped without
affecting the others.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

EMPTY_REPLY = "Done!"

_BLOCK_RE = re.compile(r"```(action|schedule|preference)[ \t]*\n?([\s\S]*?)\n?```")
_BLANK_LINES_RE = re.compile(r"\n{3,}")


@dataclass(frozen=True)
class ActionDirective:
    tool: str
    args: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ScheduleDirective:
    when: str
    tool: str
    args: Dict[str, Any] = field(default_factory=dict)
    description: str = ""


@dataclass(frozen=True)
class PreferenceDirective:
    key: str
    value: str


Directive = Union[ActionDirective, ScheduleDirective, PreferenceDirective]


@dataclass
class ParsedResponse:
    text: str
    actions: List[ActionDirective] = field(default_factory=list)
    schedule: Optional[ScheduleDirective] = None
    preference: Optional[PreferenceDirective] = None
    # One entry per fenced block in order; None marks a malformed block.
    blocks: List[Optional[Directive]] = field(default_factory=list)


def _load_object(body: str) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(body)
    except (TypeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def _args_of(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    args = data.get("args")
    if args is None:
        return {}
    return args if isinstance(args, dict) else None


def _non_empty_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _parse_action(data: Dict[str, Any]) -> Optional[ActionDirective]:
    tool = _non_empty_str(data.get("tool"))
    args = _args_of(data)
    if tool is None or args is None:
        return None
    return ActionDirective(tool=tool, args=args)


def _parse_schedule(data: Dict[str, Any]) -> Optional[ScheduleDirective]:
    when = _non_empty_str(data.get("when"))
    tool = _non_empty_str(data.get("tool"))
    args = _args_of(data)
    if when is None or tool is None or args is None:
        return None
    description = data.get("description")
    return ScheduleDirective(
        when=when,
        tool=tool,
        args=args,
        description=description if isinstance(description, str) else "",
    )


def _parse_preference(data: Dict[str, Any]) -> Optional[PreferenceDirective]:
    key = _non_empty_str(data.get("key"))
    value = data.get("value")
    if key is None or value is None or isinstance(value, (dict, list)):
        return None
    return PreferenceDirective(key=key, value=str(value))


_PARSERS = {
    "action": _parse_action,
    "schedule": _parse_schedule,
    "preference": _parse_preference,
}


def parse_response(text: str) -> ParsedResponse:
    """Split model output into display text and directives.

    Every directive block is removed from the display text, well-formed
    or not. Only the first well-formed schedule and preference count;
    every well-formed action is kept in order.
    """
    content = text or ""
    result = ParsedResponse(text="")

    for match in _BLOCK_RE.finditer(content):
        tag, body = match.group(1), match.group(2)
        data = _load_object(body)
        directive = _PARSERS[tag](data) if data is not None else None
        result.blocks.append(directive)

        if directive is None:
            logger.debug(f"Dropping malformed {tag} block: {body[:80]!r}")
        elif isinstance(directive, ActionDirective):
            result.actions.append(directive)
        elif isinstance(directive, ScheduleDirective):
            if result.schedule is None:
                result.schedule = directive
        elif result.preference is None:
            result.preference = directive

    cleaned = _BLANK_LINES_RE.sub("\n\n", _BLOCK_RE.sub("", content)).strip()
    result.text = cleaned or EMPTY_REPLY
    return result
