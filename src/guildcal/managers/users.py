"""Caches for accounts (users) and guild memberships (members)."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from guildcal.core.cache import CachedManager, normalize_id
from guildcal.models import Member, User


class UserManager(CachedManager[User]):
    """Client-wide cache of user accounts."""

    kind = "user"

    def __init__(self) -> None:
        super().__init__(User)


class MemberManager(CachedManager[Member]):
    """Per-guild cache of memberships, keyed by the member's user id."""

    kind = "member"

    def __init__(self, guild_id: str) -> None:
        super().__init__(Member)
        self.guild_id = guild_id

    def _key_of(self, data: Mapping[str, Any]) -> str | None:
        user = data.get("user")
        if not isinstance(user, Mapping):
            return None
        return normalize_id(user.get("id"))
