"""Scheduled event manager: create, fetch, edit, delete, and list subscribers.

Reads are served from the local cache when possible; every remote answer is
merged back into it. Mutations go through ``guildcal.normalize`` so that
invalid input is rejected before any request is sent.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any, Protocol

from guildcal.core.cache import CachedManager, normalize_id
from guildcal.core.tristate import Set
from guildcal.errors import UnresolvableReference
from guildcal.images import resolve_image
from guildcal.models import Member, ScheduledEvent, Subscriber, User
from guildcal.normalize import (
    ChannelResolver,
    ScheduledEventPayload,
    normalize_create,
    normalize_edit,
)
from guildcal.transport import Transport

logger = logging.getLogger(__name__)

ImageResolver = Callable[[Any], Awaitable[str]]


class AccountCache(Protocol):
    """Where subscriber user records are merged."""

    def add(self, data: Mapping[str, Any], cache: bool = True) -> User: ...


class MembershipCache(Protocol):
    """Where subscriber member records are merged."""

    def add(self, data: Mapping[str, Any], cache: bool = True) -> Member: ...


def _cursor_id(value: Any, name: str) -> str | None:
    if value is None:
        return None
    if isinstance(value, User | Member):
        return value.id
    resolved = normalize_id(value)
    if resolved is None:
        raise UnresolvableReference(name, value)
    return resolved


class ScheduledEventManager(CachedManager[ScheduledEvent]):
    """Manages the scheduled events of one guild and stores their cache."""

    kind = "scheduled event"

    def __init__(
        self,
        guild_id: str,
        *,
        transport: Transport,
        channels: ChannelResolver,
        users: AccountCache,
        members: MembershipCache,
        evict_on_delete: bool = False,
        image_resolver: ImageResolver = resolve_image,
        iterable: Iterable[Mapping[str, Any]] | None = None,
    ) -> None:
        super().__init__(ScheduledEvent, iterable)
        self.guild_id = guild_id
        self.evict_on_delete = evict_on_delete
        self._transport = transport
        self._channels = channels
        self._users = users
        self._members = members
        self._image_resolver = image_resolver

    def _path(self, *parts: str) -> str:
        return "/".join((f"/guilds/{self.guild_id}/scheduled-events", *parts))

    async def _send(self, method: str, path: str, payload: ScheduledEventPayload) -> Any:
        image = payload.fields.get("image")
        if isinstance(image, Set):
            payload.fields["image"] = Set(await self._image_resolver(image.value))
        return await self._transport.request(
            method, path, json_body=payload.to_wire(), reason=payload.reason
        )

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create(self, options: Any) -> ScheduledEvent:
        """Create a scheduled event.

        *options* is a mapping or ``ScheduledEventCreateOptions``. Voice and
        stage events require a resolvable ``channel``; external events take
        ``entity_metadata.location`` instead.
        """
        payload = normalize_create(options, channels=self._channels)
        data = await self._send("POST", self._path(), payload)
        event = self.add(data)
        logger.info("Created scheduled event %s in guild %s", event.id, self.guild_id)
        return event

    async def fetch(
        self,
        event: Any = None,
        *,
        force: bool = False,
        cache: bool = True,
        with_user_count: bool = True,
    ) -> ScheduledEvent | dict[str, ScheduledEvent]:
        """Fetch one event (when *event* is given) or every event of the guild.

        A single event is returned from the cache unless *force* is set. The
        collection form always hits the API and returns a dict in response
        order, keyed by event id.
        """
        if event is not None:
            event_id = self.resolve_id(event)
            if not force:
                existing = self.cache.get(event_id)
                if existing is not None:
                    logger.debug("Scheduled event %s served from cache", event_id)
                    return existing

            data = await self._transport.request(
                "GET", self._path(event_id), params={"with_user_count": with_user_count}
            )
            return self.add(data, cache=cache)

        data = await self._transport.request(
            "GET", self._path(), params={"with_user_count": with_user_count}
        )
        events: dict[str, ScheduledEvent] = {}
        for raw in data or ():
            fetched = self.add(raw, cache=cache)
            events[fetched.id] = fetched
        logger.debug("Fetched %d scheduled events for guild %s", len(events), self.guild_id)
        return events

    async def edit(self, event: Any, options: Any) -> ScheduledEvent:
        """Edit a scheduled event; keys missing from *options* are left unchanged."""
        event_id = self.resolve_id(event)
        payload = normalize_edit(options, channels=self._channels)
        data = await self._send("PATCH", self._path(event_id), payload)
        edited = self.add(data)
        logger.info("Edited scheduled event %s in guild %s", event_id, self.guild_id)
        return edited

    async def delete(self, event: Any) -> None:
        """Delete a scheduled event.

        The cached entry is dropped only when ``evict_on_delete`` is enabled.
        """
        event_id = self.resolve_id(event)
        await self._transport.request("DELETE", self._path(event_id))
        if self.evict_on_delete:
            self.remove(event_id)
        logger.info("Deleted scheduled event %s in guild %s", event_id, self.guild_id)

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    async def fetch_subscribers(
        self,
        event: Any,
        *,
        limit: int | None = None,
        with_member: bool | None = None,
        before: Any = None,
        after: Any = None,
    ) -> dict[str, Subscriber]:
        """Fetch one page of users subscribed to *event*.

        If both *before* and *after* are given only *before* is sent. Each
        user is merged into the account cache and, when *with_member* is set
        and the row carries member data, the member into the guild's member
        cache. Returns a dict keyed by user id in response order.
        """
        event_id = self.resolve_id(event)
        before_id = _cursor_id(before, "before")
        after_id = _cursor_id(after, "after")
        if before_id is not None and after_id is not None:
            logger.debug("Both before and after given; dropping after=%s", after_id)
            after_id = None

        query = {
            "limit": limit,
            "with_member": with_member,
            "before": before_id,
            "after": after_id,
        }
        data = await self._transport.request(
            "GET",
            self._path(event_id, "users"),
            params={key: value for key, value in query.items() if value is not None},
        )

        subscribers: dict[str, Subscriber] = {}
        for row in data or ():
            user = self._users.add(row["user"])
            member = None
            if with_member and row.get("member"):
                member = self._members.add({**row["member"], "user": row["user"]})
            subscribers[user.id] = Subscriber(
                event_id=str(row.get("guild_scheduled_event_id") or event_id),
                user=user,
                member=member,
            )
        return subscribers
