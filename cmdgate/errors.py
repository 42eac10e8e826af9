"""Error codes and the user-facing error-string table.

Permission checks and commands return an ``ErrorCode``; only the reply
formatter here turns a code into text for the chat channel.
"""

from enum import Enum
from typing import Dict, Mapping, Optional


class ErrorCode(str, Enum):
    """Opaque identifiers for command failures."""
    BLACKLISTED_USER = "blacklistedUser"
    PERMISSION_ERROR = "permissionError"
    DM_DISABLED = "dmDisabled"
    MIN_ARG_LIMIT = "minArgLimit"
    MAX_ARG_LIMIT = "maxArgLimit"
    NOT_IMPLEMENTED = "notImplemented"
    UNKNOWN_COMMAND = "unknownCommand"


DEFAULT_ERROR_STRINGS: Dict[ErrorCode, str] = {
    ErrorCode.BLACKLISTED_USER: "You have been blocked from using this command.",
    ErrorCode.PERMISSION_ERROR: "You do not have permission to use this command.",
    ErrorCode.DM_DISABLED: "This command cannot be used in direct messages.",
    ErrorCode.MIN_ARG_LIMIT: "Not enough arguments for this command.",
    ErrorCode.MAX_ARG_LIMIT: "Too many arguments for this command.",
    ErrorCode.NOT_IMPLEMENTED: "This command has not been implemented.",
    ErrorCode.UNKNOWN_COMMAND: "No such command.",
}


class ErrorStrings:
    """Lookup table from error code to text, with per-deployment overrides.

    Args:
        overrides: Mapping of code value (e.g. ``"dmDisabled"``) to text.
            Keys that are not a known code are ignored.
    """

    def __init__(self, overrides: Optional[Mapping[str, str]] = None):
        self._strings: Dict[ErrorCode, str] = dict(DEFAULT_ERROR_STRINGS)
        for key, text in (overrides or {}).items():
            try:
                self._strings[ErrorCode(key)] = text
            except ValueError:
                continue

    def get(self, code: ErrorCode) -> str:
        text = self._strings.get(code)
        if text is None:
            return getattr(code, "value", str(code))
        return text


def error_reply(code: ErrorCode, strings: Optional[ErrorStrings] = None) -> str:
    """Format the reply sent to a channel when a command is refused."""
    table = strings or ErrorStrings()
    return f":x: **Error:** {table.get(code)}"
