"""Command and alias base classes.

A command pairs a name with a CommandProperty. ``exec`` is the fixed
entry point: it runs the permission check and then the command body.
Concrete commands subclass DefaultCommand and override ``run``.

Key classes:
    CommandResponse: (ok, payload) pair returned by ``run``.
    DefaultCommand: Base class for all commands.
    DefaultAlias: Forwards execution to another command.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, NamedTuple, Optional, Sequence

import structlog

from ..errors import ErrorCode, ErrorStrings, error_reply
from ..permissions import CheckResult, CommandProperty, Decision

if TYPE_CHECKING:
    from ..chat import Message
    from .manager import CommandManager

logger = structlog.get_logger("cmdgate.commands")


class CommandResponse(NamedTuple):
    """Result of ``run``.

    ``payload`` is reply text when ``ok`` is True and an ErrorCode
    when it is False.
    """
    ok: bool
    payload: Any = None


class DefaultCommand:
    """Base class for commands.

    Args:
        name: Command name, matched case-insensitively by the manager.
        properties: Access rules. Defaults to a fresh CommandProperty
            (owner-only, fixed permissions).
        description: One line shown by ``help``.
    """

    is_alias = False

    def __init__(
        self,
        name: str,
        properties: Optional[CommandProperty] = None,
        description: str = "",
    ):
        self.name = name
        self.properties = properties if properties is not None else CommandProperty(name)
        self.description = description
        self.aliases: List[str] = []
        self.manager: Optional["CommandManager"] = None

    @property
    def error_strings(self) -> Optional[ErrorStrings]:
        return self.manager.error_strings if self.manager is not None else None

    async def exec(self, message: "Message", args: Sequence[str]) -> Any:
        """Check permissions, then run. Not meant to be overridden.

        Returns ``run``'s result when allowed, otherwise False.
        """
        result = self.check_properties(message, args)
        if result.allowed:
            return await self.run(message, args)
        if result.decision == Decision.DENY:
            logger.info(
                "command_denied",
                command=self.name,
                user=message.user_id,
                code=result.code.value,
            )
            await message.channel.send(error_reply(result.code, self.error_strings))
        else:
            logger.debug("command_denied_silently", command=self.name, user=message.user_id)
        return False

    async def run(self, message: "Message", args: Sequence[str]) -> Any:
        """Command body. Override in subclasses."""
        return CommandResponse(False, ErrorCode.NOT_IMPLEMENTED)

    def check_properties(self, message: "Message", args: Sequence[str]) -> CheckResult:
        """Permission check; subclasses may add their own conditions."""
        return self.properties.check_properties(message, args)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class DefaultAlias:
    """Another name for a command. Carries no rules of its own."""

    is_alias = True

    def __init__(self, name: str, link: DefaultCommand):
        self.name = name
        self.link = link

    async def exec(self, message: "Message", args: Sequence[str]) -> Any:
        return await self.link.exec(message, args)

    def __repr__(self) -> str:
        return f"DefaultAlias(name={self.name!r}, link={self.link.name!r})"
