"""
Compound flows - multi-step interactions the orchestrator drives itself.

Contact lookup -> message: when a ``search_contacts`` call finds a phone
number, the orchestrator does not let the model send the text. It builds
a pending ``send_imessage`` action from the number and the intended
message, then asks the user to confirm (or to supply the message).
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..constants import TOOL_SEARCH_CONTACTS, TOOL_SEND_MESSAGE
from .state import PendingAction

PHONE_RE = re.compile(r"[\+]?1?[\s\-\.]?\(?\d{3}\)?[\s\-\.]?\d{3}[\s\-\.]?\d{4}")
_PHONE_PUNCT_RE = re.compile(r"[\s\-\.\(\)]")

MESSAGE_PATTERNS = (
    re.compile(r"""(?:saying|say)\s+["']?(.+?)["']?$""", re.IGNORECASE),
    re.compile(r"""(?:that|to say)\s+["']?(.+?)["']?$""", re.IGNORECASE),
)
DRAFT_REQUEST_RE = re.compile(r"make\s*up|create|write|generate", re.IGNORECASE)

MESSAGE_FIELD = "message"


def extract_phone(text: str) -> Optional[str]:
    """First phone number in a contact search result, punctuation removed."""
    match = PHONE_RE.search(text or "")
    if not match:
        return None
    return _PHONE_PUNCT_RE.sub("", match.group(0))


def extract_message(user_text: str) -> str:
    """Pull a quoted message body out of e.g. 'text John saying hi'."""
    for pattern in MESSAGE_PATTERNS:
        match = pattern.search(user_text or "")
        if match and match.group(1):
            return match.group(1).strip().strip("\"'")
    return ""


def wants_drafted_message(user_text: str) -> bool:
    """True when the user asked the assistant to compose the message."""
    return bool(DRAFT_REQUEST_RE.search(user_text or ""))


@dataclass
class ContactMatch:
    """A successful contact lookup that can feed a message."""
    contact: str
    phone: str
    message: str


def match_contact_result(
    tool: str, args: Dict[str, Any], success: bool, result: str, user_text: str
) -> Optional[ContactMatch]:
    """Recognise a contact lookup result that should start the message flow.

    The message comes from the action's own ``message`` argument when the
    model provided one, otherwise from the user's wording.
    """
    if tool != TOOL_SEARCH_CONTACTS or not success or not result:
        return None
    if "error" in result.lower():
        return None
    phone = extract_phone(result)
    if not phone:
        return None
    message = args.get(MESSAGE_FIELD)
    message = message.strip() if isinstance(message, str) else ""
    return ContactMatch(contact=result, phone=phone, message=message or extract_message(user_text))


def build_send_pending(match: ContactMatch, user_text: str, message: Optional[str] = None) -> PendingAction:
    """Pending ``send_imessage``; awaits clarification when the body is empty."""
    body = match.message if message is None else message
    return PendingAction(
        tool=TOOL_SEND_MESSAGE,
        args={"to": match.phone, MESSAGE_FIELD: body},
        context=match.contact,
        original_request=user_text,
        missing_field=None if body else MESSAGE_FIELD,
    )


def confirmation_prompt(match: ContactMatch, message: str, drafted: bool = False) -> str:
    if drafted:
        return f'Found: **{match.contact}**\n\n> "{message}"\n\nSend? *(yes/no)*'
    return f'Found: **{match.contact}**\n\nSend "{message}"? *(yes/no)*'


def clarification_prompt(match: ContactMatch) -> str:
    return f"Found: **{match.contact}**\n\nWhat message?"


def refill_prompt(pending: PendingAction) -> str:
    """Re-prompt after the user supplied the missing message body."""
    return f'Send "{pending.args.get(MESSAGE_FIELD, "")}" to {pending.args.get("to", "")}? *(yes/no)*'
