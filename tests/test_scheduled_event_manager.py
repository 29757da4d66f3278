"""Unit tests for ScheduledEventManager create/fetch/edit/delete.

The transport is an AsyncMock, so every test asserts on the exact request
the manager issued and on how the answer was merged into the cache.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from _test_helpers import EVENT_ID, GUILD_ID, VOICE_CHANNEL_ID, make_event_data

from guildcal.client import Client
from guildcal.errors import (
    HTTPRequestError,
    InvalidArgumentType,
    UnresolvableChannel,
    UnresolvableReference,
)
from guildcal.models import ScheduledEvent

pytestmark = pytest.mark.unit

EVENTS_PATH = f"/guilds/{GUILD_ID}/scheduled-events"
EVENT_PATH = f"{EVENTS_PATH}/{EVENT_ID}"
START = datetime(2026, 3, 1, 18, 0, tzinfo=UTC)


# ---------------------------------------------------------------------------
# create
# ---------------------------------------------------------------------------


class TestCreate:
    async def test_external_event_is_posted_and_cached(self, guild, transport):
        transport.request.return_value = make_event_data()

        event = await guild.scheduled_events.create(
            {
                "name": "Game Night",
                "scheduled_start_time": START,
                "privacy_level": "guild_only",
                "entity_type": "external",
                "entity_metadata": {"location": "Community Hall"},
                "reason": "weekly plan",
            }
        )

        transport.request.assert_awaited_once_with(
            "POST",
            EVENTS_PATH,
            json_body={
                "channel_id": None,
                "name": "Game Night",
                "privacy_level": 2,
                "scheduled_start_time": "2026-03-01T18:00:00.000Z",
                "entity_type": 3,
                "entity_metadata": {"location": "Community Hall"},
            },
            reason="weekly plan",
        )
        assert isinstance(event, ScheduledEvent)
        assert guild.scheduled_events.get(EVENT_ID) is event

    async def test_voice_event_sends_resolved_channel(self, guild, transport):
        transport.request.return_value = make_event_data(
            channel_id=VOICE_CHANNEL_ID, entity_type=2, entity_metadata=None
        )

        event = await guild.scheduled_events.create(
            {
                "name": "Voice Hangout",
                "scheduled_start_time": START,
                "privacy_level": 2,
                "entity_type": 2,
                "channel": guild.channels.get(VOICE_CHANNEL_ID),
            }
        )

        body = transport.request.await_args.kwargs["json_body"]
        assert body["channel_id"] == VOICE_CHANNEL_ID
        assert body["entity_metadata"] is None
        assert event.channel_id == VOICE_CHANNEL_ID

    async def test_image_is_resolved_before_sending(self, guild, transport, image_resolver):
        transport.request.return_value = make_event_data(image="abc123")

        await guild.scheduled_events.create(
            {
                "name": "Game Night",
                "scheduled_start_time": START,
                "privacy_level": 2,
                "entity_type": 3,
                "image": b"img",
            }
        )

        image_resolver.assert_awaited_once_with(b"img")
        body = transport.request.await_args.kwargs["json_body"]
        assert body["image"] == "data:image/png;base64,aW1n"

    async def test_invalid_options_send_nothing(self, guild, transport):
        with pytest.raises(InvalidArgumentType):
            await guild.scheduled_events.create(None)
        transport.request.assert_not_awaited()

    async def test_unresolvable_channel_sends_nothing(self, guild, transport):
        with pytest.raises(UnresolvableChannel):
            await guild.scheduled_events.create(
                {
                    "name": "Voice Hangout",
                    "scheduled_start_time": START,
                    "privacy_level": 2,
                    "entity_type": "stage_instance",
                }
            )
        transport.request.assert_not_awaited()

    async def test_transport_errors_propagate(self, guild, transport):
        transport.request.side_effect = HTTPRequestError(
            status_code=403, message="Missing Permissions", method="POST", path=EVENTS_PATH
        )
        with pytest.raises(HTTPRequestError) as exc_info:
            await guild.scheduled_events.create(
                {
                    "name": "Game Night",
                    "scheduled_start_time": START,
                    "privacy_level": 2,
                    "entity_type": 3,
                }
            )
        assert exc_info.value.status_code == 403
        assert len(guild.scheduled_events) == 0


# ---------------------------------------------------------------------------
# fetch
# ---------------------------------------------------------------------------


class TestFetchSingle:
    async def test_fetch_after_create_is_served_from_cache(self, guild, transport):
        transport.request.return_value = make_event_data()
        created = await guild.scheduled_events.create(
            {
                "name": "Game Night",
                "scheduled_start_time": START,
                "privacy_level": 2,
                "entity_type": 3,
            }
        )

        fetched = await guild.scheduled_events.fetch(created.id)

        assert fetched is created
        transport.request.assert_awaited_once()

    async def test_cache_hit_skips_request(self, guild, transport):
        cached = guild.scheduled_events.add(make_event_data())

        fetched = await guild.scheduled_events.fetch(EVENT_ID)

        assert fetched is cached
        transport.request.assert_not_awaited()

    async def test_entity_argument_is_resolved(self, guild, transport):
        cached = guild.scheduled_events.add(make_event_data())
        assert await guild.scheduled_events.fetch(cached) is cached
        transport.request.assert_not_awaited()

    async def test_force_refetches_and_patches_cached_entity(self, guild, transport):
        cached = guild.scheduled_events.add(make_event_data(user_count=1))
        transport.request.return_value = make_event_data(user_count=12)

        fetched = await guild.scheduled_events.fetch(EVENT_ID, force=True)

        transport.request.assert_awaited_once_with(
            "GET", EVENT_PATH, params={"with_user_count": True}
        )
        assert fetched is cached
        assert cached.user_count == 12

    async def test_cache_miss_requests_and_caches(self, guild, transport):
        transport.request.return_value = make_event_data()

        fetched = await guild.scheduled_events.fetch(int(EVENT_ID), with_user_count=False)

        transport.request.assert_awaited_once_with(
            "GET", EVENT_PATH, params={"with_user_count": False}
        )
        assert guild.scheduled_events.get(EVENT_ID) is fetched

    async def test_cache_false_leaves_cache_untouched(self, guild, transport):
        transport.request.return_value = make_event_data()

        fetched = await guild.scheduled_events.fetch(EVENT_ID, cache=False)

        assert fetched.id == EVENT_ID
        assert EVENT_ID not in guild.scheduled_events

    async def test_unresolvable_event_raises_before_request(self, guild, transport):
        with pytest.raises(UnresolvableReference):
            await guild.scheduled_events.fetch({"id": EVENT_ID})
        transport.request.assert_not_awaited()


class TestFetchCollection:
    async def test_returns_events_in_response_order(self, guild, transport):
        transport.request.return_value = [
            make_event_data(id="3", name="Third"),
            make_event_data(id="1", name="First"),
            make_event_data(id="2", name="Second"),
        ]

        events = await guild.scheduled_events.fetch()

        transport.request.assert_awaited_once_with(
            "GET", EVENTS_PATH, params={"with_user_count": True}
        )
        assert list(events) == ["3", "1", "2"]
        assert all(guild.scheduled_events.get(key) is events[key] for key in events)

    async def test_collection_always_hits_the_api(self, guild, transport):
        guild.scheduled_events.add(make_event_data())
        transport.request.return_value = []

        events = await guild.scheduled_events.fetch()

        assert events == {}
        transport.request.assert_awaited_once()

    async def test_existing_entries_are_patched_in_place(self, guild, transport):
        cached = guild.scheduled_events.add(make_event_data(name="Old"))
        transport.request.return_value = [make_event_data(name="New")]

        events = await guild.scheduled_events.fetch()

        assert events[EVENT_ID] is cached
        assert cached.name == "New"


# ---------------------------------------------------------------------------
# edit
# ---------------------------------------------------------------------------


class TestEdit:
    async def test_patch_sends_only_supplied_fields(self, guild, transport):
        cached = guild.scheduled_events.add(make_event_data())
        transport.request.return_value = make_event_data(name="Renamed")

        edited = await guild.scheduled_events.edit(cached, {"name": "Renamed", "reason": "typo"})

        transport.request.assert_awaited_once_with(
            "PATCH", EVENT_PATH, json_body={"name": "Renamed"}, reason="typo"
        )
        assert edited is cached
        assert cached.name == "Renamed"
        assert cached.description == "Bring snacks"

    async def test_omitted_fields_keep_cached_values(self, guild, transport):
        cached = guild.scheduled_events.add(make_event_data(description="Keep me"))
        transport.request.return_value = {"id": EVENT_ID, "guild_id": GUILD_ID, "name": "Renamed"}

        await guild.scheduled_events.edit(EVENT_ID, {"name": "Renamed"})

        assert "description" not in transport.request.await_args.kwargs["json_body"]
        assert cached.name == "Renamed"
        assert cached.description == "Keep me"
        assert cached.entity_metadata.location == "Community Hall"

    async def test_clearing_channel_and_end_time(self, guild, transport):
        transport.request.return_value = make_event_data(scheduled_end_time=None)

        await guild.scheduled_events.edit(
            EVENT_ID, {"channel": None, "scheduled_end_time": None}
        )

        body = transport.request.await_args.kwargs["json_body"]
        assert body == {"channel_id": None, "scheduled_end_time": None}

    async def test_status_change(self, guild, transport):
        transport.request.return_value = make_event_data(status=2)

        edited = await guild.scheduled_events.edit(EVENT_ID, {"status": "active"})

        assert transport.request.await_args.kwargs["json_body"] == {"status": 2}
        assert edited.is_active()

    async def test_unresolvable_event_raises(self, guild, transport):
        with pytest.raises(UnresolvableReference):
            await guild.scheduled_events.edit(None, {"name": "x"})
        transport.request.assert_not_awaited()

    async def test_non_object_options_raise(self, guild, transport):
        with pytest.raises(InvalidArgumentType):
            await guild.scheduled_events.edit(EVENT_ID, ["name"])
        transport.request.assert_not_awaited()


# ---------------------------------------------------------------------------
# delete
# ---------------------------------------------------------------------------


class TestDelete:
    async def test_delete_keeps_cache_by_default(self, guild, transport):
        guild.scheduled_events.add(make_event_data())
        transport.request.return_value = None

        result = await guild.scheduled_events.delete(EVENT_ID)

        assert result is None
        transport.request.assert_awaited_once_with("DELETE", EVENT_PATH)
        assert EVENT_ID in guild.scheduled_events

    async def test_delete_evicts_when_configured(self, transport, image_resolver):
        client = Client(transport, evict_on_delete=True, image_resolver=image_resolver)
        guild = client.guild(GUILD_ID)
        guild.scheduled_events.add(make_event_data())
        transport.request.return_value = None

        await guild.scheduled_events.delete(EVENT_ID)

        assert EVENT_ID not in guild.scheduled_events

    async def test_failed_delete_keeps_cache(self, transport, image_resolver):
        client = Client(transport, evict_on_delete=True, image_resolver=image_resolver)
        guild = client.guild(GUILD_ID)
        guild.scheduled_events.add(make_event_data())
        transport.request.side_effect = HTTPRequestError(
            status_code=404,
            message="Unknown Guild Scheduled Event",
            method="DELETE",
            path=EVENT_PATH,
        )

        with pytest.raises(HTTPRequestError):
            await guild.scheduled_events.delete(EVENT_ID)

        assert EVENT_ID in guild.scheduled_events

    async def test_unresolvable_event_raises(self, guild, transport):
        with pytest.raises(UnresolvableReference):
            await guild.scheduled_events.delete("")
        transport.request.assert_not_awaited()
