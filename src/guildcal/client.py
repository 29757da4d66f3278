"""Client facade wiring the transport, the user cache, and per-guild managers."""

from __future__ import annotations

import logging
from typing import Any

from guildcal.config import GuildcalConfig
from guildcal.core.cache import normalize_id
from guildcal.errors import UnresolvableReference
from guildcal.images import resolve_image
from guildcal.managers.channels import ChannelManager
from guildcal.managers.scheduled_events import ImageResolver, ScheduledEventManager
from guildcal.managers.users import MemberManager, UserManager
from guildcal.transport import RestClient, Transport

logger = logging.getLogger(__name__)


class Guild:
    """A guild and the caches that belong to it."""

    def __init__(self, client: Client, guild_id: str) -> None:
        self.id = guild_id
        self.client = client
        self.channels = ChannelManager(guild_id)
        self.members = MemberManager(guild_id)
        self.scheduled_events = ScheduledEventManager(
            guild_id,
            transport=client.rest,
            channels=self.channels,
            users=client.users,
            members=self.members,
            evict_on_delete=client.evict_on_delete,
            image_resolver=client.image_resolver,
        )

    def __repr__(self) -> str:
        return f"Guild(id={self.id!r})"


class Client:
    """Entry point: holds the transport, the user cache, and known guilds.

    Use as an async context manager to close the HTTP client it created::

        async with Client.from_config(config) as client:
            events = await client.guild("123").scheduled_events.fetch()
    """

    def __init__(
        self,
        rest: Transport,
        *,
        evict_on_delete: bool = False,
        owns_rest: bool = False,
        image_resolver: ImageResolver | None = None,
    ) -> None:
        self.rest = rest
        self.evict_on_delete = evict_on_delete
        self.image_resolver: ImageResolver = image_resolver or self._resolve_image
        self.users = UserManager()
        self._guilds: dict[str, Guild] = {}
        self._owns_rest = owns_rest

    @classmethod
    def from_config(cls, config: GuildcalConfig) -> Client:
        rest = RestClient(
            config.client.token,
            base_url=config.client.api_base_url,
            timeout=config.client.timeout_seconds,
            user_agent=config.client.user_agent,
        )
        return cls(rest, evict_on_delete=config.cache.evict_on_delete, owns_rest=True)

    async def _resolve_image(self, value: Any) -> str:
        http_client = self.rest.http_client if isinstance(self.rest, RestClient) else None
        return await resolve_image(value, http_client=http_client)

    def guild(self, guild_id: Any) -> Guild:
        """Return the ``Guild`` for *guild_id*, creating its caches on first use."""
        resolved = normalize_id(guild_id)
        if resolved is None:
            raise UnresolvableReference("guild", guild_id)
        guild = self._guilds.get(resolved)
        if guild is None:
            guild = Guild(self, resolved)
            self._guilds[resolved] = guild
            logger.debug("Registered guild %s", resolved)
        return guild

    async def aclose(self) -> None:
        if self._owns_rest and isinstance(self.rest, RestClient):
            await self.rest.aclose()

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.aclose()
