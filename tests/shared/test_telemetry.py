"""Tests for decision tracing and telemetry setup"""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from fastapi import FastAPI
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import \
    InMemorySpanExporter
from opentelemetry.trace import StatusCode

from ifarm.application.services.access_decision_engine import \
    AccessDecisionEngine
from ifarm.application.services.access_state import AccessState
from ifarm.application.services.audit_log_writer import InMemoryAuditLogWriter
from ifarm.application.services.permission_catalog import PermissionCatalog
from ifarm.domain.entities.role import RoleEntity
from ifarm.domain.enums import Action, ResourceType
from ifarm.domain.value_objects.access import Environment, Resource, Subject
from ifarm.shared.telemetry import tracing
from ifarm.shared.telemetry.telemetry import (TelemetryConfig, get_telemetry,
                                              set_telemetry)
from ifarm.shared.telemetry.tracing import traced

CATALOG = PermissionCatalog.system()


@pytest.fixture
def spans(monkeypatch):
    """Route @traced spans into an in-memory exporter"""
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    monkeypatch.setattr(tracing, "_tracer", provider.get_tracer("ifarm"))
    yield exporter
    provider.shutdown()


@pytest.mark.asyncio
async def test_traced_async_records_span(spans):
    @traced("farm.lookup", attributes={"farm.kind": "dairy"})
    async def lookup():
        return "ok"

    assert await lookup() == "ok"

    (span,) = spans.get_finished_spans()
    assert span.name == "farm.lookup"
    assert span.attributes["farm.kind"] == "dairy"


def test_traced_sync_records_error(spans):
    @traced()
    def explode():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        explode()

    (span,) = spans.get_finished_spans()
    assert span.name.endswith("explode")
    assert span.status.status_code == StatusCode.ERROR
    assert span.events[0].name == "exception"


@pytest.mark.asyncio
async def test_decide_span_carries_decision(spans):
    engine = AccessDecisionEngine(CATALOG, InMemoryAuditLogWriter())
    state = AccessState(
        tenant_id="t1",
        timezone="Africa/Kampala",
        roles=(
            RoleEntity(
                id="role-worker",
                tenant_id="t1",
                name="Worker",
                permission_ids=CATALOG.ids_for_names(["view_animals"]),
            ),
        ),
    )
    now = datetime(2025, 1, 15, 9, tzinfo=ZoneInfo("Africa/Kampala"))

    await engine.decide(
        Subject(user_id="u1", tenant_id="t1"),
        Action.VIEW,
        Resource(resource_type=ResourceType.ANIMAL, tenant_id="t1", resource_id="cow-1"),
        Environment(now=now, timezone="Africa/Kampala"),
        state,
    )

    (span,) = spans.get_finished_spans()
    assert span.name == "authz.decide"
    assert span.attributes["authz.allowed"] is True
    assert span.attributes["authz.reason"] == "granted"
    assert span.attributes["authz.permission"] == "view_animals"
    assert span.attributes["authz.resource_type"] == "animal"


def test_disabled_telemetry_is_a_no_op():
    telemetry = TelemetryConfig("iFarm Access Control", "1.0.0", enabled=False)

    assert telemetry.setup_telemetry() is None
    telemetry.instrument_fastapi(FastAPI())
    telemetry.instrument_redis()
    telemetry.shutdown()
    assert telemetry.tracer_provider is None


def test_global_telemetry_registry():
    telemetry = TelemetryConfig("iFarm Access Control", "1.0.0", enabled=False)
    set_telemetry(telemetry)
    try:
        assert get_telemetry() is telemetry
    finally:
        set_telemetry(None)
    assert get_telemetry() is None
