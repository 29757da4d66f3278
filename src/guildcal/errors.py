"""Exception hierarchy for guildcal.

Local validation errors are raised before any request is sent. Transport
errors (``RequestError`` and subclasses) come from the bundled ``RestClient``
and are passed through the managers unchanged.
"""

from __future__ import annotations


class GuildcalError(Exception):
    """Base class for every error raised by guildcal."""


class InvalidArgumentType(GuildcalError, TypeError):
    """Raised when an argument has the wrong type (e.g. options is not a mapping)."""

    def __init__(self, name: str, expected: str, actual: object) -> None:
        self.name = name
        self.expected = expected
        super().__init__(
            f"Supplied {name} is not {expected} (got {type(actual).__name__})"
        )


class UnresolvableReference(GuildcalError, ValueError):
    """Raised when a value cannot be reduced to a resource identifier."""

    def __init__(self, kind: str, value: object) -> None:
        self.kind = kind
        self.value = value
        super().__init__(f"Could not resolve {kind} from {type(value).__name__} value")


class UnresolvableChannel(GuildcalError, ValueError):
    """Raised when a voice or stage channel cannot be resolved in the guild."""

    def __init__(self, value: object = None) -> None:
        self.value = value
        super().__init__("Could not resolve channel to a guild voice or stage channel")


class InvalidTimestamp(GuildcalError, ValueError):
    """Raised when a timestamp value cannot be parsed."""


class UnknownEnumName(GuildcalError, ValueError):
    """Raised when a symbolic enum name is not part of its lookup table."""

    def __init__(self, enum_name: str, value: str) -> None:
        self.enum_name = enum_name
        self.value = value
        super().__init__(f"{value!r} is not a valid {enum_name}")


class InvalidImage(GuildcalError, ValueError):
    """Raised when an image input cannot be turned into a data URI."""


class RequestError(GuildcalError):
    """Raised when the HTTP request itself fails (connection, timeout, bad payload)."""


class HTTPRequestError(RequestError):
    """Raised when the API answers with a non-2xx status."""

    def __init__(self, *, status_code: int, message: str, method: str, path: str) -> None:
        self.status_code = status_code
        self.message = message
        self.method = method
        self.path = path
        super().__init__(f"{method} {path} failed ({status_code}): {message}")
