"""Custom exception hierarchy for cmdgate.

Permission outcomes are never exceptions (see ``permissions.CheckResult``).
These classes cover programmer and infrastructure errors: bad
registrations, invalid configuration, and store failures.
"""

from typing import Any, Optional


class CmdGateError(Exception):
    """Base exception for all cmdgate errors.

    Attributes:
        message: Human-readable error description.
        module: Originating module name (e.g. "database").
        context: Arbitrary key-value pairs for structured logging.
    """

    def __init__(
        self,
        message: str = "",
        *,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.message = message
        self.module = module
        self.context = context
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message or self.__class__.__name__]
        if self.module:
            parts.append(f"[module={self.module}]")
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"({ctx})")
        return " ".join(parts)

    def __repr__(self) -> str:
        cls = self.__class__.__name__
        return f"{cls}({self.message!r}, module={self.module!r})"


class CommandRegistrationError(CmdGateError):
    """A command or alias could not be registered.

    Attributes:
        command: The name that caused the conflict.
    """

    def __init__(
        self,
        message: str = "",
        *,
        command: Optional[str] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.command = command
        super().__init__(message, module=module or "commands", **context)


class ConfigurationError(CmdGateError):
    """Invalid or missing configuration."""

    def __init__(
        self,
        message: str = "",
        *,
        setting_name: Optional[str] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.setting_name = setting_name
        super().__init__(message, module=module or "config", **context)


class DatabaseError(CmdGateError):
    """Error during key-value store operations.

    Attributes:
        operation: The operation that failed (e.g. "read", "commit").
        table: The record name involved (if known).
    """

    def __init__(
        self,
        message: str = "",
        *,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.operation = operation
        self.table = table
        super().__init__(message, module=module or "database", **context)
