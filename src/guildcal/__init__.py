"""guildcal: cache-backed client for guild scheduled events."""

from guildcal.client import Client, Guild
from guildcal.managers.scheduled_events import ScheduledEventManager
from guildcal.models import ScheduledEvent, Subscriber

__version__ = "0.1.0"

__all__ = ["Client", "Guild", "ScheduledEvent", "ScheduledEventManager", "Subscriber"]
