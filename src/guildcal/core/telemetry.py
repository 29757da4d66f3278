"""OpenTelemetry span helpers for outbound API requests.

Only the OpenTelemetry API is used; without a configured TracerProvider the
spans are no-ops. Applications that want traces install their own provider.
"""

from __future__ import annotations

from opentelemetry import context as context_api
from opentelemetry import trace

_TRACER_NAME = "guildcal"


def get_tracer(name: str = _TRACER_NAME) -> trace.Tracer:
    """Get a tracer from the current provider."""
    return trace.get_tracer(name)


def tag_guild_span(span: trace.Span, guild_id: str | None) -> None:
    """Attach the guild id to *span* when one is known."""
    if guild_id is not None:
        span.set_attribute("guildcal.guild_id", guild_id)


class http_span:
    """Create a span around one API request.

    Usage::

        with http_span("GET", "/guilds/{guild_id}/scheduled-events"):
            ...

    The span is named ``guildcal.http <METHOD> <route>``. Exceptions are
    recorded on the span and its status set to ERROR before re-raising.
    """

    def __init__(self, method: str, route: str, *, guild_id: str | None = None) -> None:
        self._method = method.upper()
        self._route = route
        self._guild_id = guild_id
        self._span: trace.Span | None = None
        self._token: object | None = None

    def __enter__(self) -> trace.Span:
        tracer = get_tracer()
        self._span = tracer.start_span(f"guildcal.http {self._method} {self._route}")
        self._span.set_attribute("http.request.method", self._method)
        self._span.set_attribute("url.path", self._route)
        tag_guild_span(self._span, self._guild_id)
        self._token = context_api.attach(trace.set_span_in_context(self._span))
        return self._span

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._span is None:
            return
        if exc_val is not None:
            self._span.set_status(trace.StatusCode.ERROR, str(exc_val))
            self._span.record_exception(exc_val)
        self._span.end()
        if self._token is not None:
            context_api.detach(self._token)
