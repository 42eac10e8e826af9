"""Platform-neutral message model.

A platform adapter translates its own events into these objects before
handing them to the CommandManager. Only the fields the permission
check and the dispatcher read are modelled.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, Iterable, Optional


class ChannelType(str, Enum):
    TEXT = "text"
    DM = "dm"


@dataclass(frozen=True)
class Role:
    """A guild role. Higher ``position`` outranks lower."""
    id: str
    position: int
    name: str = ""


def _index_roles(roles: Iterable[Role]) -> Dict[str, Role]:
    return {role.id: role for role in roles}


@dataclass
class Guild:
    """The community a message was posted in, with its full role list."""
    id: str
    roles: Dict[str, Role] = field(default_factory=dict)

    @classmethod
    def with_roles(cls, guild_id: str, roles: Iterable[Role]) -> "Guild":
        return cls(id=guild_id, roles=_index_roles(roles))

    def get_role(self, role_id: str) -> Optional[Role]:
        return self.roles.get(role_id)


@dataclass
class Member:
    """The sender as seen inside a guild."""
    id: str
    roles: Dict[str, Role] = field(default_factory=dict)

    @classmethod
    def with_roles(cls, member_id: str, roles: Iterable[Role]) -> "Member":
        return cls(id=member_id, roles=_index_roles(roles))

    def has_role(self, role_id: str) -> bool:
        return role_id in self.roles

    @property
    def highest_role(self) -> Optional[Role]:
        """The member's top-ranked role, or None if they hold none."""
        if not self.roles:
            return None
        return max(self.roles.values(), key=lambda r: r.position)


@dataclass
class Channel:
    """Where a message came from and where replies go.

    Attributes:
        send: Async callable that posts text to this channel.
    """
    id: str
    type: ChannelType
    send: Callable[[str], Awaitable[None]]


@dataclass
class Message:
    """An inbound chat message.

    ``member`` and ``guild`` are None for direct messages.
    """
    content: str
    channel: Channel
    author_id: str
    member: Optional[Member] = None
    guild: Optional[Guild] = None

    @property
    def user_id(self) -> str:
        return self.member.id if self.member is not None else self.author_id

    @property
    def is_direct(self) -> bool:
        return self.channel.type == ChannelType.DM
