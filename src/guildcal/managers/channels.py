"""Per-guild channel cache."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from guildcal.core.cache import CachedManager
from guildcal.models import Channel


class ChannelManager(CachedManager[Channel]):
    kind = "channel"

    def __init__(self, guild_id: str, iterable: Iterable[Mapping[str, Any]] | None = None) -> None:
        self.guild_id = guild_id
        super().__init__(Channel, iterable)

    def _construct(self, data: Mapping[str, Any]) -> Channel:
        return Channel.model_validate({"guild_id": self.guild_id, **data})
