"""Command registry and message dispatcher."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Union

import structlog

from ..errors import ErrorCode, ErrorStrings, error_reply
from ..exceptions import CommandRegistrationError
from .base import CommandResponse, DefaultAlias, DefaultCommand

if TYPE_CHECKING:
    from ..chat import Message
    from ..database import DatabaseSystem

logger = structlog.get_logger("cmdgate.commands")

Executable = Union[DefaultCommand, DefaultAlias]


class CommandManager:
    """Maps command and alias names to executables and dispatches messages.

    Collaborators are passed in explicitly; commands reach the error
    table through the manager they are registered with.

    Args:
        database: Store used when loading non-fixed permissions.
        prefix: Text that marks a message as a command.
        error_strings: Error-code to text table for replies.
    """

    def __init__(
        self,
        database: "DatabaseSystem",
        prefix: str = "!",
        error_strings: Optional[ErrorStrings] = None,
    ):
        self.database = database
        self.prefix = prefix
        self.error_strings = error_strings or ErrorStrings()
        self._entries: Dict[str, Executable] = {}

    # ---- registration ----

    def register(self, command: DefaultCommand) -> DefaultCommand:
        """Add a command. Names are case-insensitive and must be unique."""
        key = command.name.lower()
        if key in self._entries:
            raise CommandRegistrationError(
                f"Name already registered: {command.name}", command=command.name
            )
        command.manager = self
        self._entries[key] = command
        logger.debug("command_registered", command=command.name)
        return command

    def register_alias(self, alias_name: str, target_name: str) -> DefaultAlias:
        """Register ``alias_name`` as another name for an existing command."""
        target = self._entries.get(target_name.lower())
        if target is None or target.is_alias:
            raise CommandRegistrationError(
                f"Alias target is not a registered command: {target_name}",
                command=alias_name,
            )
        key = alias_name.lower()
        if key in self._entries:
            raise CommandRegistrationError(
                f"Name already registered: {alias_name}", command=alias_name
            )
        alias = DefaultAlias(alias_name, target)
        self._entries[key] = alias
        target.aliases.append(alias_name)
        logger.debug("alias_registered", alias=alias_name, command=target.name)
        return alias

    def get(self, name: str) -> Optional[Executable]:
        return self._entries.get(name.lower())

    @property
    def commands(self) -> List[DefaultCommand]:
        """Registered commands (not aliases) in registration order."""
        return [e for e in self._entries.values() if not e.is_alias]

    async def finish_all(self) -> None:
        """Load stored permissions for every command that is not fixed."""
        for command in self.commands:
            if not command.properties.fixed_permissions:
                await command.properties.finish(self.database)

    # ---- dispatch ----

    def parse(self, content: str) -> Optional[Tuple[str, List[str]]]:
        """Split ``!name a b`` into ``("name", ["a", "b"])``; None if not a command."""
        if not content.startswith(self.prefix):
            return None
        parts = content[len(self.prefix):].split()
        if not parts:
            return None
        return parts[0].lower(), parts[1:]

    async def dispatch(self, message: "Message") -> Any:
        """Route a message to its command and deliver the response.

        Returns None when the message is not a known command, otherwise
        whatever the command's ``exec`` returned.
        """
        parsed = self.parse(message.content)
        if parsed is None:
            return None
        name, args = parsed

        entry = self.get(name)
        if entry is None:
            logger.debug("unknown_command", command=name)
            return None

        try:
            result = await entry.exec(message, args)
        except Exception as e:
            logger.error("command_failed", command=name, error=str(e), exc_info=True)
            raise

        if isinstance(result, CommandResponse):
            await self._deliver(message, result)
        return result

    async def _deliver(self, message: "Message", response: CommandResponse) -> None:
        if response.ok:
            if isinstance(response.payload, str) and response.payload:
                await message.channel.send(response.payload)
        elif isinstance(response.payload, ErrorCode):
            await message.channel.send(error_reply(response.payload, self.error_strings))
