"""Command framework for cmdgate.

Provides the DefaultCommand / DefaultAlias base classes, the
CommandManager registry and dispatcher, and the built-in commands.
"""

from .base import CommandResponse, DefaultAlias, DefaultCommand
from .core import HelpCommand, PermsCommand, PingCommand, register_builtin_commands
from .manager import CommandManager

__all__ = [
    "CommandManager",
    "CommandResponse",
    "DefaultAlias",
    "DefaultCommand",
    "HelpCommand",
    "PermsCommand",
    "PingCommand",
    "register_builtin_commands",
]
