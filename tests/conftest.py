"""Shared fixtures for the guildcal test suite."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from _test_helpers import GUILD_ID, VOICE_CHANNEL_ID
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from guildcal.client import Client, Guild
from guildcal.constants import ChannelType


def _reset_otel_global_state():
    """Fully reset the OpenTelemetry global tracer provider state."""
    trace._TRACER_PROVIDER_SET_ONCE = trace.Once()
    trace._TRACER_PROVIDER = None


@pytest.fixture
def otel_provider():
    """Install an in-memory TracerProvider for one test, then tear down."""
    _reset_otel_global_state()
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    yield exporter
    provider.shutdown()
    _reset_otel_global_state()


@pytest.fixture
def transport() -> AsyncMock:
    """A Transport double whose ``request`` coroutine is an AsyncMock."""
    mock = AsyncMock()
    mock.request = AsyncMock()
    return mock


@pytest.fixture
def image_resolver() -> AsyncMock:
    return AsyncMock(return_value="data:image/png;base64,aW1n")


@pytest.fixture
def client(transport: AsyncMock, image_resolver: AsyncMock) -> Client:
    return Client(transport, image_resolver=image_resolver)


@pytest.fixture
def guild(client: Client) -> Guild:
    guild = client.guild(GUILD_ID)
    guild.channels.add({"id": VOICE_CHANNEL_ID, "type": ChannelType.GUILD_VOICE, "name": "Lounge"})
    return guild
