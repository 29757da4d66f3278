"""Unit tests for ScheduledEventManager.fetch_subscribers()."""

from __future__ import annotations

import pytest
from _test_helpers import EVENT_ID, GUILD_ID, make_event_data, make_user_data

from guildcal.errors import UnresolvableReference
from guildcal.models import Subscriber, User

pytestmark = pytest.mark.unit

USERS_PATH = f"/guilds/{GUILD_ID}/scheduled-events/{EVENT_ID}/users"


def _row(user_id: str, *, member: dict | None = None) -> dict:
    row = {"guild_scheduled_event_id": EVENT_ID, "user": make_user_data(user_id)}
    if member is not None:
        row["member"] = member
    return row


class TestQuery:
    async def test_minimal_query_sends_no_params(self, guild, transport):
        transport.request.return_value = []

        result = await guild.scheduled_events.fetch_subscribers(EVENT_ID)

        transport.request.assert_awaited_once_with("GET", USERS_PATH, params={})
        assert result == {}

    async def test_all_params_are_forwarded(self, guild, transport):
        transport.request.return_value = []

        await guild.scheduled_events.fetch_subscribers(
            EVENT_ID, limit=50, with_member=True, after="900"
        )

        transport.request.assert_awaited_once_with(
            "GET", USERS_PATH, params={"limit": 50, "with_member": True, "after": "900"}
        )

    async def test_before_wins_over_after(self, guild, transport):
        transport.request.return_value = []

        await guild.scheduled_events.fetch_subscribers(EVENT_ID, before="500", after="900")

        params = transport.request.await_args.kwargs["params"]
        assert params == {"before": "500"}

    async def test_cursor_accepts_user_entity(self, guild, transport):
        transport.request.return_value = []

        await guild.scheduled_events.fetch_subscribers(EVENT_ID, after=User(id="42"))

        assert transport.request.await_args.kwargs["params"] == {"after": "42"}

    async def test_event_entity_is_resolved(self, guild, transport):
        event = guild.scheduled_events.add(make_event_data())
        transport.request.return_value = []

        await guild.scheduled_events.fetch_subscribers(event)

        assert transport.request.await_args.args == ("GET", USERS_PATH)

    async def test_unresolvable_event_raises(self, guild, transport):
        with pytest.raises(UnresolvableReference):
            await guild.scheduled_events.fetch_subscribers(None)
        transport.request.assert_not_awaited()

    async def test_unresolvable_cursor_raises(self, guild, transport):
        with pytest.raises(UnresolvableReference):
            await guild.scheduled_events.fetch_subscribers(EVENT_ID, before=object())
        transport.request.assert_not_awaited()


class TestResults:
    async def test_users_are_cached_and_returned_in_order(self, guild, transport, client):
        transport.request.return_value = [_row("30"), _row("10"), _row("20")]

        result = await guild.scheduled_events.fetch_subscribers(EVENT_ID)

        assert list(result) == ["30", "10", "20"]
        subscriber = result["10"]
        assert isinstance(subscriber, Subscriber)
        assert subscriber.event_id == EVENT_ID
        assert subscriber.member is None
        assert client.users.get("10") is subscriber.user

    async def test_members_are_merged_when_requested(self, guild, transport):
        member_data = {"nick": "Ana", "roles": ["7"]}
        transport.request.return_value = [_row("10", member=member_data)]

        result = await guild.scheduled_events.fetch_subscribers(EVENT_ID, with_member=True)

        member = result["10"].member
        assert member is not None
        assert member.nick == "Ana"
        assert member.user.id == "10"
        assert guild.members.get("10") is member

    async def test_member_data_is_ignored_without_with_member(self, guild, transport):
        transport.request.return_value = [_row("10", member={"nick": "Ana"})]

        result = await guild.scheduled_events.fetch_subscribers(EVENT_ID)

        assert result["10"].member is None
        assert len(guild.members) == 0

    async def test_row_without_member_keeps_member_empty(self, guild, transport):
        transport.request.return_value = [_row("10")]

        result = await guild.scheduled_events.fetch_subscribers(EVENT_ID, with_member=True)

        assert result["10"].member is None

    async def test_known_user_is_patched(self, guild, transport, client):
        known = client.users.add({"id": "10", "username": "old"})
        transport.request.return_value = [
            {"guild_scheduled_event_id": EVENT_ID, "user": {"id": "10", "username": "new"}}
        ]

        result = await guild.scheduled_events.fetch_subscribers(EVENT_ID)

        assert result["10"].user is known
        assert known.username == "new"
