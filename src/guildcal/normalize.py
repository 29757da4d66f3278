"""Turn caller options into scheduled-event wire payloads.

Everything here is synchronous and side-effect free. Each payload field is
held as a tri-state value (see ``guildcal.core.tristate``) so the difference
between "leave unchanged", "clear" and "set" survives until the request body
is rendered. Image inputs are carried through untouched; the manager resolves
them to data URIs because that step may do I/O.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time
from typing import Any, Protocol

from pydantic import BaseModel

from guildcal.constants import (
    PrivacyLevel,
    RecurrenceFrequency,
    RecurrenceMonth,
    RecurrenceWeekday,
    ScheduledEventEntityType,
    ScheduledEventStatus,
    resolve_enum,
)
from guildcal.core.tristate import CLEAR, UNSET, Set, TriState, from_options, map_set, to_wire
from guildcal.errors import (
    InvalidArgumentType,
    InvalidTimestamp,
    UnresolvableChannel,
    UnresolvableReference,
)
from guildcal.models import OptionsModel, RecurrenceRuleOptions


class ChannelResolver(Protocol):
    """Anything that can reduce a channel argument to a channel id."""

    def resolve_id(self, value: Any) -> str: ...


@dataclass
class ScheduledEventPayload:
    """Normalized request: tri-state body fields plus the audit-log reason."""

    fields: dict[str, TriState] = field(default_factory=dict)
    reason: str | None = None

    def to_wire(self) -> dict[str, Any]:
        return to_wire(self.fields)


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def coerce_options(options: Any) -> dict[str, Any]:
    """Accept a mapping or an options model; anything else is a type error."""
    if isinstance(options, OptionsModel):
        return options.as_options()
    if isinstance(options, Mapping):
        return dict(options)
    raise InvalidArgumentType("options", "an object", options)


def format_timestamp(value: Any) -> str:
    """Format *value* as an ISO-8601 UTC timestamp with millisecond precision.

    Accepts ``datetime`` (naive values are taken as UTC), ``date`` (midnight
    UTC), ISO-8601 strings, and Unix timestamps in seconds.
    """
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime.combine(value, time(), tzinfo=UTC)
    elif isinstance(value, int | float) and not isinstance(value, bool):
        try:
            moment = datetime.fromtimestamp(value, tz=UTC)
        except (OverflowError, OSError, ValueError) as exc:
            raise InvalidTimestamp(f"Timestamp {value!r} is out of range") from exc
    elif isinstance(value, str):
        normalized = value.strip()
        if normalized.endswith(("Z", "z")):
            normalized = f"{normalized[:-1]}+00:00"
        try:
            moment = datetime.fromisoformat(normalized)
        except ValueError as exc:
            raise InvalidTimestamp(f"Invalid timestamp string: {value!r}") from exc
    else:
        raise InvalidTimestamp(f"Cannot interpret {type(value).__name__} as a timestamp")

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _enum_field(
    options: Mapping[str, Any], key: str, enum_cls: type[enum.IntEnum]
) -> TriState:
    return map_set(from_options(options, key), lambda value: resolve_enum(enum_cls, value))


def _end_time_field(options: Mapping[str, Any]) -> TriState:
    # Falsy values are forwarded untouched so an explicit None clears the end time.
    if "scheduled_end_time" not in options:
        return UNSET
    value = options["scheduled_end_time"]
    if value:
        return Set(format_timestamp(value))
    if value is None:
        return CLEAR
    return Set(value)


def _metadata_body(metadata: Any) -> dict[str, Any]:
    # Only location is forwarded, and only when the caller actually gave one.
    if metadata is None:
        return {}
    if isinstance(metadata, BaseModel):
        if "location" in metadata.model_fields_set:
            return {"location": metadata.location}  # type: ignore[attr-defined]
        return {}
    if isinstance(metadata, Mapping):
        return {"location": metadata["location"]} if "location" in metadata else {}
    if hasattr(metadata, "location"):
        return {"location": metadata.location}
    return {}


def _resolve_channel(channels: ChannelResolver, value: Any) -> str:
    try:
        return channels.resolve_id(value)
    except UnresolvableReference:
        raise UnresolvableChannel(value) from None


def _enum_list(enum_cls: type[enum.IntEnum], values: Any) -> list[int] | None:
    if values is None:
        return None
    return [resolve_enum(enum_cls, value) for value in values]


def _n_weekday_to_wire(item: Any) -> dict[str, int]:
    if isinstance(item, Mapping):
        n, day = item.get("n"), item.get("day")
    else:
        n, day = getattr(item, "n", None), getattr(item, "day", None)
    return {"n": n, "day": resolve_enum(RecurrenceWeekday, day)}


def transform_recurrence_rule(rule: Any) -> dict[str, Any]:
    """Convert recurrence rule options to the API's ``recurrence_rule`` shape."""
    if isinstance(rule, RecurrenceRuleOptions):
        data = rule.model_dump()
    elif isinstance(rule, Mapping):
        data = dict(rule)
    else:
        raise InvalidArgumentType("recurrence_rule", "an object", rule)

    n_weekdays = data.get("by_n_weekday")
    wire = {
        "start": format_timestamp(data.get("start_at")),
        "frequency": resolve_enum(RecurrenceFrequency, data.get("frequency")),
        "interval": data.get("interval"),
        "by_weekday": _enum_list(RecurrenceWeekday, data.get("by_weekday")),
        "by_n_weekday": (
            None
            if n_weekdays is None
            else [_n_weekday_to_wire(item) for item in n_weekdays]
        ),
        "by_month": _enum_list(RecurrenceMonth, data.get("by_month")),
        "by_month_day": data.get("by_month_day"),
    }
    return {key: value for key, value in wire.items() if value is not None}


# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------


def normalize_create(options: Any, *, channels: ChannelResolver) -> ScheduledEventPayload:
    """Build the POST payload for a new scheduled event.

    External events always clear ``channel_id`` and send ``entity_metadata``,
    holding ``location`` only when the caller gave one. Voice and stage events
    need a channel that resolves through *channels*; their metadata is sent
    only when supplied and cleared otherwise.
    """
    opts = coerce_options(options)

    privacy_level = _enum_field(opts, "privacy_level", PrivacyLevel)
    entity_type = _enum_field(opts, "entity_type", ScheduledEventEntityType)

    if isinstance(entity_type, Set) and entity_type.value == ScheduledEventEntityType.EXTERNAL:
        channel_id: TriState = CLEAR
        entity_metadata: TriState = Set(_metadata_body(opts.get("entity_metadata")))
    else:
        channel_id = Set(_resolve_channel(channels, opts.get("channel")))
        metadata = opts.get("entity_metadata")
        entity_metadata = CLEAR if metadata is None else Set(_metadata_body(metadata))

    return ScheduledEventPayload(
        fields={
            "channel_id": channel_id,
            "name": from_options(opts, "name"),
            "privacy_level": privacy_level,
            "scheduled_start_time": Set(format_timestamp(opts.get("scheduled_start_time"))),
            "scheduled_end_time": _end_time_field(opts),
            "description": from_options(opts, "description"),
            "image": from_options(opts, "image"),
            "entity_type": entity_type,
            "entity_metadata": entity_metadata,
            "recurrence_rule": map_set(
                from_options(opts, "recurrence_rule"), transform_recurrence_rule
            ),
        },
        reason=opts.get("reason"),
    )


def normalize_edit(options: Any, *, channels: ChannelResolver) -> ScheduledEventPayload:
    """Build the PATCH payload for an existing scheduled event.

    Only keys present in *options* reach the body. ``channel=None`` clears the
    channel, ``scheduled_end_time=None`` clears the end time, and
    ``entity_metadata`` is forwarded (as ``location`` only) when supplied.
    """
    opts = coerce_options(options)

    channel_id = map_set(
        from_options(opts, "channel"), lambda value: _resolve_channel(channels, value)
    )

    start_time = opts.get("scheduled_start_time")
    metadata = opts.get("entity_metadata")

    return ScheduledEventPayload(
        fields={
            "channel_id": channel_id,
            "name": from_options(opts, "name"),
            "privacy_level": _enum_field(opts, "privacy_level", PrivacyLevel),
            "scheduled_start_time": Set(format_timestamp(start_time)) if start_time else UNSET,
            "scheduled_end_time": _end_time_field(opts),
            "description": from_options(opts, "description"),
            "entity_type": _enum_field(opts, "entity_type", ScheduledEventEntityType),
            "status": _enum_field(opts, "status", ScheduledEventStatus),
            "image": from_options(opts, "image"),
            "entity_metadata": Set(_metadata_body(metadata)) if metadata is not None else UNSET,
            "recurrence_rule": map_set(
                from_options(opts, "recurrence_rule"), transform_recurrence_rule
            ),
        },
        reason=opts.get("reason"),
    )
