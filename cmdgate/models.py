"""Pydantic models for access rules and their persisted form."""

from enum import Enum
from typing import Any, Iterable, List, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RuleType(str, Enum):
    """Subject a rule entry applies to."""
    USER = "user"
    CHANNEL = "channel"
    ROLE = "role"


class RuleEntry(BaseModel):
    """One whitelist or blacklist rule.

    ``exact`` only matters for role entries: True requires the caller
    to hold this exact role, False accepts this role or anything ranked
    above it.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: RuleType
    id: str = Field(..., description="User, channel or role id")
    exact: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        """Platform ids are often stored as numbers; compare them as text."""
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @classmethod
    def user(cls, user_id: str) -> "RuleEntry":
        return cls(type=RuleType.USER, id=str(user_id))

    @classmethod
    def channel(cls, channel_id: str) -> "RuleEntry":
        return cls(type=RuleType.CHANNEL, id=str(channel_id))

    @classmethod
    def role(cls, role_id: str, exact: bool = False) -> "RuleEntry":
        return cls(type=RuleType.ROLE, id=str(role_id), exact=exact)


RuleLike = Union[RuleEntry, dict]


def coerce_rules(entries: Iterable[Any]) -> List[RuleEntry]:
    """Accept RuleEntry objects or plain dicts and return RuleEntry objects."""
    return [
        entry if isinstance(entry, RuleEntry) else RuleEntry.model_validate(entry)
        for entry in entries
    ]


class PermissionRecord(BaseModel):
    """Stored rule set for one command in the ``cmd_lists`` record."""

    whitelist: List[RuleEntry] = Field(default_factory=list)
    blacklist: List[RuleEntry] = Field(default_factory=list)

    def to_store(self) -> dict:
        """JSON-ready form: ``exact`` is only written for role entries."""
        def dump(entry: RuleEntry) -> dict:
            data = {"type": entry.type.value, "id": entry.id}
            if entry.type == RuleType.ROLE:
                data["exact"] = entry.exact
            return data

        return {
            "whitelist": [dump(e) for e in self.whitelist],
            "blacklist": [dump(e) for e in self.blacklist],
        }
