"""Per-command access rules and the permission check.

CommandProperty holds a command's whitelist, blacklist, argument
bounds and DM policy. ``check_properties`` evaluates them for one
message in a fixed order:

    1. blacklist  (user → blacklistedUser, channel → silent deny)
    2. whitelist  (only when use_whitelist is on; no match → permissionError)
    3. DM policy  (dmDisabled)
    4. argument bounds (minArgLimit / maxArgLimit)

Commands without fixed permissions load their lists from the
``cmd_lists`` record of the key-value store in ``finish()``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence

import structlog
from pydantic import ValidationError

from .errors import ErrorCode
from .exceptions import DatabaseError
from .models import PermissionRecord, RuleEntry, RuleLike, RuleType, coerce_rules

if TYPE_CHECKING:
    from .chat import Message
    from .database import DatabaseSystem

logger = structlog.get_logger("cmdgate.permissions")

PERMISSIONS_RECORD = "cmd_lists"
UNBOUNDED = -1


class Decision(str, Enum):
    ALLOW = "allow"
    DENY_SILENT = "deny_silent"
    DENY = "deny"


@dataclass(frozen=True)
class CheckResult:
    """Outcome of a permission check.

    ``code`` is set only for ``Decision.DENY``.
    """
    decision: Decision
    code: Optional[ErrorCode] = None

    @classmethod
    def allow(cls) -> "CheckResult":
        return cls(Decision.ALLOW)

    @classmethod
    def deny_silent(cls) -> "CheckResult":
        return cls(Decision.DENY_SILENT)

    @classmethod
    def deny(cls, code: ErrorCode) -> "CheckResult":
        return cls(Decision.DENY, code)

    @property
    def allowed(self) -> bool:
        return self.decision == Decision.ALLOW


class CommandProperty:
    """Access rules for one command.

    Setters return ``self`` so a command can be configured in one
    chain. Treat the object as read-only once ``finish()`` has run.

    Args:
        command_name: Name of the command; keys its stored rules.
        owner_id: User seeded into the default whitelist. Defaults to
            the configured owner.
    """

    def __init__(self, command_name: str, owner_id: Optional[str] = None):
        if owner_id is None:
            from .config import get_config
            owner_id = get_config().owner_id

        self.command_name = command_name
        self.min_args = UNBOUNDED
        self.max_args = UNBOUNDED
        self.dm_allowed = True
        # Fixed permissions are never read from or written to the store
        self.fixed_permissions = True
        self.use_whitelist = True
        self.whitelist: List[RuleEntry] = [RuleEntry.user(owner_id)] if owner_id else []
        self.blacklist: List[RuleEntry] = []

    # ---- fluent configuration ----

    def set_args(self, min_args: int, max_args: int) -> "CommandProperty":
        self.min_args = min_args
        self.max_args = max_args
        return self

    def no_args(self) -> "CommandProperty":
        self.min_args = UNBOUNDED
        self.max_args = UNBOUNDED
        return self

    def allow_dm(self, allowed: bool) -> "CommandProperty":
        self.dm_allowed = allowed
        return self

    def set_fixed_permissions(self, fixed: bool) -> "CommandProperty":
        self.fixed_permissions = fixed
        return self

    def force_whitelist(self, enabled: bool) -> "CommandProperty":
        """True: default deny unless whitelisted. False: default allow."""
        self.use_whitelist = enabled
        return self

    def set_whitelist(self, entries: Iterable[RuleLike]) -> "CommandProperty":
        self.whitelist = coerce_rules(entries)
        return self

    def set_blacklist(self, entries: Iterable[RuleLike]) -> "CommandProperty":
        self.blacklist = coerce_rules(entries)
        return self

    # ---- persisted rules ----

    async def finish(self, database: "DatabaseSystem") -> bool:
        """Load stored rules. Call once, after configuration, when not fixed."""
        if self.fixed_permissions:
            logger.warning("finish_on_fixed_permissions", command=self.command_name)
            return False
        return await self._update_permissions(database)

    async def _update_permissions(self, database: "DatabaseSystem") -> bool:
        record = await database.get_database(PERMISSIONS_RECORD)
        lists = record.data
        if lists is None:
            self.whitelist = []
            logger.error("permissions_load_failed", command=self.command_name,
                         reason="store unavailable")
            return False

        stored = lists.get(self.command_name)
        if stored is None:
            defaults = PermissionRecord(whitelist=self.whitelist, blacklist=self.blacklist)
            lists[self.command_name] = defaults.to_store()
            try:
                await database.commit(record)
            except DatabaseError as e:
                self.whitelist = []
                logger.error("permissions_load_failed", command=self.command_name,
                             reason="commit failed", error=str(e))
                return False
            logger.info("permissions_created_with_defaults", command=self.command_name)
            stored = lists[self.command_name]

        try:
            loaded = PermissionRecord.model_validate(stored)
        except ValidationError as e:
            self.whitelist = []
            logger.error("permissions_load_failed", command=self.command_name,
                         reason="invalid record", error=str(e))
            return False

        self.whitelist = list(loaded.whitelist)
        self.blacklist = list(loaded.blacklist)
        logger.info(
            "permissions_loaded",
            command=self.command_name,
            whitelist=len(self.whitelist),
            blacklist=len(self.blacklist),
        )
        return True

    # ---- evaluation ----

    def check_properties(self, message: "Message", args: Sequence[str]) -> CheckResult:
        """Decide whether ``message`` may run this command with ``args``."""
        user_id = message.user_id
        channel_id = message.channel.id

        blocked: Optional[CheckResult] = None
        for entry in self.blacklist:
            if entry.type == RuleType.USER and entry.id == user_id:
                return CheckResult.deny(ErrorCode.BLACKLISTED_USER)
            if entry.type == RuleType.CHANNEL and entry.id == channel_id:
                blocked = CheckResult.deny_silent()
        if blocked is not None:
            return blocked

        if self.use_whitelist and not self._is_whitelisted(message):
            return CheckResult.deny(ErrorCode.PERMISSION_ERROR)

        if not self.dm_allowed and message.is_direct:
            return CheckResult.deny(ErrorCode.DM_DISABLED)

        if self.min_args != UNBOUNDED and len(args) < self.min_args:
            return CheckResult.deny(ErrorCode.MIN_ARG_LIMIT)
        if self.max_args != UNBOUNDED and len(args) > self.max_args:
            return CheckResult.deny(ErrorCode.MAX_ARG_LIMIT)

        return CheckResult.allow()

    def _is_whitelisted(self, message: "Message") -> bool:
        user_id = message.user_id
        member = message.member
        for entry in self.whitelist:
            if entry.type == RuleType.USER:
                if entry.id == user_id:
                    return True
            elif entry.type == RuleType.ROLE and member is not None:
                if entry.exact:
                    if member.has_role(entry.id):
                        return True
                elif self._outranks(message, entry.id):
                    return True
        return False

    @staticmethod
    def _outranks(message: "Message", threshold_id: str) -> bool:
        """True if the sender's top role ranks at or above ``threshold_id``."""
        if message.guild is None or message.member is None:
            return False
        threshold = message.guild.get_role(threshold_id)
        highest = message.member.highest_role
        if threshold is None or highest is None:
            return False
        return highest.position >= threshold.position
