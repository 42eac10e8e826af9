"""Tests for CommandProperty rules and the permission check."""

from unittest.mock import AsyncMock

import pytest

from cmdgate.chat import Channel, ChannelType, Guild, Member, Message, Role
from cmdgate.errors import ErrorCode
from cmdgate.models import RuleEntry
from cmdgate.permissions import CheckResult, CommandProperty, Decision

OWNER = "100"
USER = "200"

MEMBER_ROLE = Role(id="r-member", position=1, name="member")
MOD_ROLE = Role(id="r-mod", position=5, name="mod")
ADMIN_ROLE = Role(id="r-admin", position=9, name="admin")
GUILD = Guild.with_roles("g1", [MEMBER_ROLE, MOD_ROLE, ADMIN_ROLE])


def _make_message(user_id=USER, roles=(), channel_id="c1", direct=False):
    channel = Channel(
        id=channel_id,
        type=ChannelType.DM if direct else ChannelType.TEXT,
        send=AsyncMock(),
    )
    if direct:
        return Message(content="", channel=channel, author_id=user_id)
    return Message(
        content="",
        channel=channel,
        author_id=user_id,
        member=Member.with_roles(user_id, roles),
        guild=GUILD,
    )


def _props(**kwargs):
    return CommandProperty("cmd", owner_id=kwargs.pop("owner_id", OWNER))


# --- defaults and builders ---

def test_defaults_seed_owner_whitelist():
    props = _props()
    assert props.whitelist == [RuleEntry.user(OWNER)]
    assert props.blacklist == []
    assert props.min_args == -1 and props.max_args == -1
    assert props.dm_allowed is True
    assert props.fixed_permissions is True
    assert props.use_whitelist is True


def test_setters_chain_on_same_instance():
    props = _props()
    result = (
        props.set_args(1, 3)
        .allow_dm(False)
        .set_fixed_permissions(False)
        .force_whitelist(False)
    )
    assert result is props
    assert (props.min_args, props.max_args) == (1, 3)
    assert props.dm_allowed is False
    assert props.fixed_permissions is False
    assert props.use_whitelist is False
    assert props.no_args() is props
    assert (props.min_args, props.max_args) == (-1, -1)


def test_set_whitelist_accepts_dicts():
    props = _props().set_whitelist([{"type": "role", "id": "r-mod", "exact": True}])
    assert props.whitelist == [RuleEntry.role("r-mod", exact=True)]


# --- whitelist ---

def test_owner_is_allowed_by_default():
    assert _props().check_properties(_make_message(user_id=OWNER), []).allowed


def test_other_user_gets_permission_error():
    result = _props().check_properties(_make_message(), [])
    assert result == CheckResult.deny(ErrorCode.PERMISSION_ERROR)


def test_empty_whitelist_denies_everyone():
    props = _props().set_whitelist([])
    for user in (OWNER, USER, "999"):
        result = props.check_properties(_make_message(user_id=user, roles=[ADMIN_ROLE]), [])
        assert result.code == ErrorCode.PERMISSION_ERROR


def test_default_allow_skips_whitelist():
    props = _props().set_whitelist([]).force_whitelist(False)
    assert props.check_properties(_make_message(), []).allowed


def test_ranked_role_allows_higher_role():
    props = _props().set_whitelist([RuleEntry.role("r-mod")])
    assert props.check_properties(_make_message(roles=[ADMIN_ROLE]), []).allowed
    assert props.check_properties(_make_message(roles=[MOD_ROLE]), []).allowed


def test_ranked_role_uses_highest_role():
    props = _props().set_whitelist([RuleEntry.role("r-mod")])
    message = _make_message(roles=[MEMBER_ROLE, ADMIN_ROLE])
    assert props.check_properties(message, []).allowed


def test_ranked_role_denies_lower_role():
    props = _props().set_whitelist([RuleEntry.role("r-mod")])
    result = props.check_properties(_make_message(roles=[MEMBER_ROLE]), [])
    assert result.code == ErrorCode.PERMISSION_ERROR


def test_ranked_role_denies_member_without_roles():
    props = _props().set_whitelist([RuleEntry.role("r-mod")])
    result = props.check_properties(_make_message(roles=[]), [])
    assert result.code == ErrorCode.PERMISSION_ERROR


def test_ranked_role_unknown_threshold_is_no_match():
    props = _props().set_whitelist([RuleEntry.role("r-gone")])
    result = props.check_properties(_make_message(roles=[ADMIN_ROLE]), [])
    assert result.code == ErrorCode.PERMISSION_ERROR


def test_exact_role_requires_that_role():
    props = _props().set_whitelist([RuleEntry.role("r-mod", exact=True)])
    assert props.check_properties(_make_message(roles=[MOD_ROLE]), []).allowed
    result = props.check_properties(_make_message(roles=[ADMIN_ROLE]), [])
    assert result.code == ErrorCode.PERMISSION_ERROR


def test_role_entries_never_match_in_dm():
    props = _props().set_whitelist([RuleEntry.role("r-member")])
    result = props.check_properties(_make_message(direct=True), [])
    assert result.code == ErrorCode.PERMISSION_ERROR


def test_channel_whitelist_entries_are_ignored():
    props = _props().set_whitelist([RuleEntry.channel("c1")])
    result = props.check_properties(_make_message(channel_id="c1"), [])
    assert result.code == ErrorCode.PERMISSION_ERROR


# --- blacklist ---

def test_blacklisted_user_wins_over_whitelist():
    props = _props().set_whitelist([RuleEntry.user(USER)]).set_blacklist([RuleEntry.user(USER)])
    result = props.check_properties(_make_message(), [])
    assert result == CheckResult.deny(ErrorCode.BLACKLISTED_USER)


def test_blacklisted_user_checked_before_arg_limits():
    props = _props().force_whitelist(False).set_args(1, 1).set_blacklist([RuleEntry.user(USER)])
    assert props.check_properties(_make_message(), []).code == ErrorCode.BLACKLISTED_USER


def test_blacklisted_channel_denies_silently():
    props = _props().force_whitelist(False).set_blacklist([RuleEntry.channel("c1")])
    result = props.check_properties(_make_message(channel_id="c1"), [])
    assert result.decision == Decision.DENY_SILENT
    assert result.code is None
    assert props.check_properties(_make_message(channel_id="c2"), []).allowed


def test_blacklisted_user_after_channel_still_reports_error():
    props = _props().force_whitelist(False).set_blacklist(
        [RuleEntry.channel("c1"), RuleEntry.user(USER)]
    )
    result = props.check_properties(_make_message(channel_id="c1"), [])
    assert result.code == ErrorCode.BLACKLISTED_USER


def test_role_blacklist_entries_are_ignored():
    props = _props().force_whitelist(False).set_blacklist([RuleEntry.role("r-member")])
    assert props.check_properties(_make_message(roles=[MEMBER_ROLE]), []).allowed


# --- DM policy ---

def test_dm_disabled_even_when_lists_pass():
    props = _props().allow_dm(False)
    result = props.check_properties(_make_message(user_id=OWNER, direct=True), [])
    assert result == CheckResult.deny(ErrorCode.DM_DISABLED)


def test_dm_allowed_by_default():
    assert _props().check_properties(_make_message(user_id=OWNER, direct=True), []).allowed


def test_dm_policy_ignores_guild_channels():
    props = _props().allow_dm(False)
    assert props.check_properties(_make_message(user_id=OWNER), []).allowed


# --- argument bounds ---

@pytest.mark.parametrize("count, expected", [
    (0, ErrorCode.MIN_ARG_LIMIT),
    (1, ErrorCode.MIN_ARG_LIMIT),
    (2, None),
    (3, None),
    (4, None),
    (5, ErrorCode.MAX_ARG_LIMIT),
])
def test_argument_bounds(count, expected):
    props = _props().set_args(2, 4)
    result = props.check_properties(_make_message(user_id=OWNER), ["x"] * count)
    assert result.code == expected
    assert result.allowed is (expected is None)


def test_only_min_bound_set():
    props = _props().set_args(1, -1)
    assert props.check_properties(_make_message(user_id=OWNER), ["x"] * 50).allowed


def test_whitelist_checked_before_arg_limits():
    props = _props().set_args(2, 2)
    assert props.check_properties(_make_message(), []).code == ErrorCode.PERMISSION_ERROR


def test_numeric_ids_match_string_ids():
    props = _props().set_whitelist([{"type": "user", "id": 200}])
    assert props.whitelist == [RuleEntry.user(USER)]
    assert props.check_properties(_make_message(), []).allowed
