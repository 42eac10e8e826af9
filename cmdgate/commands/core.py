"""Built-in commands: help, ping, perms."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

from ..errors import ErrorCode
from ..models import RuleEntry, RuleType
from ..permissions import CommandProperty
from .base import CommandResponse, DefaultCommand

if TYPE_CHECKING:
    from ..chat import Message
    from .manager import CommandManager


def _public(name: str) -> CommandProperty:
    """Fixed, default-allow rules for commands anyone may run."""
    return CommandProperty(name, owner_id="").force_whitelist(False)


class PingCommand(DefaultCommand):
    def __init__(self):
        super().__init__(
            "ping",
            _public("ping").set_args(0, 0),
            description="Check that the bot is responding.",
        )

    async def run(self, message: "Message", args: Sequence[str]):
        return CommandResponse(True, "pong")


class HelpCommand(DefaultCommand):
    """Lists commands, or describes the one named in the first argument."""

    def __init__(self):
        super().__init__(
            "help",
            _public("help").set_args(0, 1),
            description="List commands, or describe one: help <command>.",
        )

    async def run(self, message: "Message", args: Sequence[str]):
        manager = self.manager
        if manager is None:
            return CommandResponse(False, ErrorCode.NOT_IMPLEMENTED)

        if args:
            entry = manager.get(args[0])
            if entry is None:
                return CommandResponse(False, ErrorCode.UNKNOWN_COMMAND)
            command = entry.link if entry.is_alias else entry
            return CommandResponse(True, _describe(manager.prefix, command))

        lines = ["**Commands**"]
        for command in manager.commands:
            lines.append(_describe(manager.prefix, command))
        return CommandResponse(True, "\n".join(lines))


class PermsCommand(DefaultCommand):
    """Shows the rules loaded for a command. Owner-managed via the store."""

    def __init__(self, owner_id: Optional[str] = None):
        super().__init__(
            "perms",
            CommandProperty("perms", owner_id=owner_id)
            .set_fixed_permissions(False)
            .set_args(0, 1),
            description="Show the access rules of a command: perms <command>.",
        )

    async def run(self, message: "Message", args: Sequence[str]):
        manager = self.manager
        if manager is None:
            return CommandResponse(False, ErrorCode.NOT_IMPLEMENTED)

        entry = manager.get(args[0]) if args else self
        if entry is None:
            return CommandResponse(False, ErrorCode.UNKNOWN_COMMAND)
        command = entry.link if entry.is_alias else entry
        props = command.properties

        lines = [f"**{command.name}**"]
        if props.fixed_permissions:
            lines[0] += " (fixed)"
        if props.use_whitelist:
            lines.append(f"whitelist: {_format_rules(props.whitelist)}")
        else:
            lines.append("whitelist: off")
        lines.append(f"blacklist: {_format_rules(props.blacklist)}")
        return CommandResponse(True, "\n".join(lines))


def _format_rules(entries: Sequence[RuleEntry]) -> str:
    if not entries:
        return "none"
    parts = []
    for entry in entries:
        text = f"{entry.type.value}:{entry.id}"
        if entry.type == RuleType.ROLE and entry.exact:
            text += " (exact)"
        parts.append(text)
    return ", ".join(parts)


def _describe(prefix: str, command: DefaultCommand) -> str:
    line = f"{prefix}{command.name}"
    if command.aliases:
        line += f" ({', '.join(command.aliases)})"
    if command.description:
        line += f" - {command.description}"
    return line


def register_builtin_commands(manager: "CommandManager", owner_id: Optional[str] = None) -> None:
    manager.register(HelpCommand())
    manager.register(PingCommand())
    manager.register(PermsCommand(owner_id))
    manager.register_alias("commands", "help")
