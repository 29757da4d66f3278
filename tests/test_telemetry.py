"""Tests for the http_span helper."""

from __future__ import annotations

import pytest
from opentelemetry import trace

from guildcal.core.telemetry import http_span

pytestmark = [pytest.mark.unit, pytest.mark.usefixtures("otel_provider")]


class TestHttpSpan:
    def test_span_name_and_attributes(self, otel_provider):
        with http_span("get", "/guilds/1/scheduled-events", guild_id="1"):
            pass

        (span,) = otel_provider.get_finished_spans()
        assert span.name == "guildcal.http GET /guilds/1/scheduled-events"
        assert span.attributes["http.request.method"] == "GET"
        assert span.attributes["url.path"] == "/guilds/1/scheduled-events"
        assert span.attributes["guildcal.guild_id"] == "1"

    def test_span_is_current_inside_block(self):
        with http_span("GET", "/x") as span:
            assert trace.get_current_span() is span
        assert trace.get_current_span() is not span

    def test_exception_marks_span_as_error(self, otel_provider):
        with pytest.raises(RuntimeError), http_span("DELETE", "/x"):
            raise RuntimeError("boom")

        (span,) = otel_provider.get_finished_spans()
        assert span.status.status_code == trace.StatusCode.ERROR
        assert span.events[0].name == "exception"

    def test_guild_attribute_omitted_when_unknown(self, otel_provider):
        with http_span("GET", "/x"):
            pass

        (span,) = otel_provider.get_finished_spans()
        assert "guildcal.guild_id" not in span.attributes
