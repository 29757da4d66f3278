"""Wire enumerations and symbolic-name lookup."""

from __future__ import annotations

import enum
from typing import Any

from guildcal.errors import UnknownEnumName

API_BASE_URL = "https://discord.com/api/v10"
CDN_BASE_URL = "https://cdn.discordapp.com"
EVENT_URL_BASE = "https://discord.com/events"
AUDIT_LOG_REASON_HEADER = "X-Audit-Log-Reason"

# Milliseconds since the first second of 2015, used by snowflake timestamps.
SNOWFLAKE_EPOCH_MS = 1420070400000


class PrivacyLevel(enum.IntEnum):
    """Who can see a scheduled event."""

    GUILD_ONLY = 2


class ScheduledEventEntityType(enum.IntEnum):
    """Where a scheduled event takes place."""

    STAGE_INSTANCE = 1
    VOICE = 2
    EXTERNAL = 3


class ScheduledEventStatus(enum.IntEnum):
    SCHEDULED = 1
    ACTIVE = 2
    COMPLETED = 3
    CANCELED = 4


class RecurrenceFrequency(enum.IntEnum):
    YEARLY = 0
    MONTHLY = 1
    WEEKLY = 2
    DAILY = 3


class RecurrenceWeekday(enum.IntEnum):
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6


class RecurrenceMonth(enum.IntEnum):
    JANUARY = 1
    FEBRUARY = 2
    MARCH = 3
    APRIL = 4
    MAY = 5
    JUNE = 6
    JULY = 7
    AUGUST = 8
    SEPTEMBER = 9
    OCTOBER = 10
    NOVEMBER = 11
    DECEMBER = 12


class ChannelType(enum.IntEnum):
    """Subset of channel types relevant to scheduled events."""

    GUILD_TEXT = 0
    GUILD_VOICE = 2
    GUILD_CATEGORY = 4
    GUILD_STAGE_VOICE = 13


def resolve_enum(enum_cls: type[enum.IntEnum], value: Any) -> Any:
    """Translate a symbolic enum name into its integer wire code.

    Names are matched case-insensitively (``"external"`` and ``"EXTERNAL"``
    both work). Integers and enum members pass through as plain ints; ``None``
    passes through unchanged so callers can keep tri-state semantics.
    """
    if value is None:
        return None
    if isinstance(value, enum.IntEnum):
        return int(value)
    if isinstance(value, str):
        key = value.strip().upper().replace("-", "_").replace(" ", "_")
        try:
            return int(enum_cls[key])
        except KeyError:
            raise UnknownEnumName(enum_cls.__name__, value) from None
    return value
