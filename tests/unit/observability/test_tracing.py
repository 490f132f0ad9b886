"""Tests for batch tracing."""

import asyncio
from typing import Any

import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from single_user_cache import Factory
from single_user_cache.observability import tracing
from single_user_cache.observability.tracing import NoOpTracer, get_tracer

_exporter = InMemorySpanExporter()


@pytest.fixture(scope="module")
def exporter() -> InMemorySpanExporter:
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(_exporter))
    trace.set_tracer_provider(provider)
    if trace.get_tracer_provider() is not provider:
        pytest.skip("a tracer provider was already installed")
    return _exporter


class TestBatchSpans:
    """One span per batch call."""

    @pytest.mark.asyncio
    async def test_span_per_chunk(self, exporter: InMemorySpanExporter) -> None:
        """Each chunk gets a span with operation and size."""
        exporter.clear()

        async def fetch(keys: list[int], context: Any) -> list[int]:
            return keys

        cache = Factory().add("traced_fetch", fetch, max_batch_size=2).create()
        await asyncio.gather(*(cache.traced_fetch(k) for k in range(3)))

        spans = [s for s in exporter.get_finished_spans() if s.name == "single_user_cache.batch"]
        assert sorted(s.attributes["batch.size"] for s in spans) == [1, 2]
        assert {s.attributes["batch.operation"] for s in spans} == {"traced_fetch"}

    @pytest.mark.asyncio
    async def test_failure_is_recorded(self, exporter: InMemorySpanExporter) -> None:
        """Batch failures are recorded on the span."""
        exporter.clear()

        async def broken(keys: list[int], context: Any) -> list[int]:
            raise RuntimeError("down")

        cache = Factory().add("traced_broken", broken).create()
        with pytest.raises(RuntimeError):
            await cache.traced_broken(1)

        (span,) = [s for s in exporter.get_finished_spans() if s.name == "single_user_cache.batch"]
        assert [event.name for event in span.events] == ["exception"]

    @pytest.mark.asyncio
    async def test_synchronous_failure_is_recorded(self, exporter: InMemorySpanExporter) -> None:
        """A batch function raising before returning still gets a span."""
        exporter.clear()

        def broken(keys: list[int], context: Any) -> list[int]:
            raise RuntimeError("down")

        cache = Factory().add("traced_sync_broken", broken).create()
        with pytest.raises(RuntimeError):
            await cache.traced_sync_broken(1)

        (span,) = [s for s in exporter.get_finished_spans() if s.name == "single_user_cache.batch"]
        assert span.attributes["batch.operation"] == "traced_sync_broken"
        assert [event.name for event in span.events] == ["exception"]


class TestGetTracer:
    """Test get_tracer."""

    def test_disabled(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """With tracing disabled a no-op tracer is returned."""
        monkeypatch.setattr(tracing.settings, "enable_tracing", False)

        tracer = get_tracer(__name__)

        assert isinstance(tracer, NoOpTracer)
        with tracer.start_as_current_span("x") as span:
            span.set_attribute("k", "v")
            span.record_exception(ValueError())

    def test_enabled(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """With tracing enabled an OpenTelemetry tracer is returned."""
        monkeypatch.setattr(tracing.settings, "enable_tracing", True)

        assert not isinstance(get_tracer(__name__), NoOpTracer)
