"""Hydrated resources and caller-facing option models.

Wire models mirror the API's snake_case payloads and are patched in place
when a newer record for the same id arrives (see ``CachedManager.add``).
Option models are what callers may pass to ``create`` / ``edit`` instead of a
plain mapping; only the fields a caller actually set are forwarded.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from guildcal.constants import (
    CDN_BASE_URL,
    EVENT_URL_BASE,
    SNOWFLAKE_EPOCH_MS,
    ScheduledEventStatus,
)


def _coerce_snowflake(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


Snowflake = Annotated[str, BeforeValidator(_coerce_snowflake)]


def snowflake_timestamp(snowflake: str) -> datetime:
    """Return the creation time encoded in a snowflake id."""
    millis = (int(snowflake) >> 22) + SNOWFLAKE_EPOCH_MS
    return datetime.fromtimestamp(millis / 1000, tz=UTC)


class _WireModel(BaseModel):
    """Base for API records: unknown keys are ignored, ints ids become strings."""

    model_config = ConfigDict(extra="ignore")

    def patch(self, data: Mapping[str, Any]) -> None:
        """Overwrite fields present in *data*, keeping this object's identity."""
        fresh = type(self).model_validate({**self.model_dump(), **data})
        for name in type(self).model_fields:
            setattr(self, name, getattr(fresh, name))


class User(_WireModel):
    id: Snowflake
    username: str | None = None
    global_name: str | None = None
    discriminator: str | None = None
    avatar: str | None = None
    bot: bool = False


class Member(_WireModel):
    """Guild membership; keyed in its cache by the member's user id."""

    user: User
    nick: str | None = None
    avatar: str | None = None
    roles: list[str] = Field(default_factory=list)
    joined_at: datetime | None = None

    @property
    def id(self) -> str:
        return self.user.id


class Channel(_WireModel):
    id: Snowflake
    type: int
    name: str | None = None
    guild_id: Snowflake | None = None


class EntityMetadata(_WireModel):
    location: str | None = None


class RecurrenceNWeekday(_WireModel):
    n: int
    day: int


class RecurrenceRule(_WireModel):
    """Recurrence rule as returned by the API. Never interpreted locally."""

    start: datetime
    end: datetime | None = None
    frequency: int
    interval: int
    by_weekday: list[int] | None = None
    by_n_weekday: list[RecurrenceNWeekday] | None = None
    by_month: list[int] | None = None
    by_month_day: list[int] | None = None
    by_year_day: list[int] | None = None
    count: int | None = None


class ScheduledEvent(_WireModel):
    """A guild scheduled event."""

    id: Snowflake
    guild_id: Snowflake
    channel_id: Snowflake | None = None
    creator_id: Snowflake | None = None
    creator: User | None = None
    name: str
    description: str | None = None
    scheduled_start_time: datetime | None = None
    scheduled_end_time: datetime | None = None
    privacy_level: int
    status: int
    entity_type: int
    entity_id: Snowflake | None = None
    entity_metadata: EntityMetadata | None = None
    user_count: int | None = None
    image: str | None = None
    recurrence_rule: RecurrenceRule | None = None

    @property
    def created_at(self) -> datetime:
        return snowflake_timestamp(self.id)

    @property
    def url(self) -> str:
        """Shareable link to the event page."""
        return f"{EVENT_URL_BASE}/{self.guild_id}/{self.id}"

    def cover_image_url(self, *, size: int | None = None) -> str | None:
        """CDN URL of the cover image, or ``None`` when the event has none."""
        if self.image is None:
            return None
        url = f"{CDN_BASE_URL}/guild-events/{self.id}/{self.image}.png"
        if size is not None:
            url = f"{url}?size={size}"
        return url

    def is_scheduled(self) -> bool:
        return self.status == ScheduledEventStatus.SCHEDULED

    def is_active(self) -> bool:
        return self.status == ScheduledEventStatus.ACTIVE

    def is_completed(self) -> bool:
        return self.status == ScheduledEventStatus.COMPLETED

    def is_canceled(self) -> bool:
        return self.status == ScheduledEventStatus.CANCELED


@dataclass(frozen=True)
class Subscriber:
    """A user subscribed to a scheduled event, with membership when requested."""

    event_id: str
    user: User
    member: Member | None = None


# ---------------------------------------------------------------------------
# Caller-facing options
# ---------------------------------------------------------------------------


class OptionsModel(BaseModel):
    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    def as_options(self) -> dict[str, Any]:
        """Return only the fields the caller set, without converting values."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class EntityMetadataOptions(OptionsModel):
    location: str | None = None


class RecurrenceNWeekdayOptions(OptionsModel):
    n: int = Field(ge=1, le=5)
    day: int | str


class RecurrenceRuleOptions(OptionsModel):
    start_at: datetime | str | int | float
    frequency: int | str
    interval: int = Field(ge=1)
    by_weekday: list[int | str] | None = None
    by_n_weekday: list[RecurrenceNWeekdayOptions] | None = None
    by_month: list[int | str] | None = None
    by_month_day: list[int] | None = None


class ScheduledEventCreateOptions(OptionsModel):
    name: str
    scheduled_start_time: datetime | str | int | float
    privacy_level: int | str
    entity_type: int | str
    scheduled_end_time: datetime | str | int | float | None = None
    description: str | None = None
    channel: Any = None
    entity_metadata: EntityMetadataOptions | None = None
    image: Any = None
    recurrence_rule: RecurrenceRuleOptions | None = None
    reason: str | None = None


class ScheduledEventEditOptions(OptionsModel):
    name: str | None = None
    scheduled_start_time: datetime | str | int | float | None = None
    scheduled_end_time: datetime | str | int | float | None = None
    privacy_level: int | str | None = None
    entity_type: int | str | None = None
    status: int | str | None = None
    description: str | None = None
    channel: Any = None
    entity_metadata: EntityMetadataOptions | None = None
    image: Any = None
    recurrence_rule: RecurrenceRuleOptions | None = None
    reason: str | None = None
