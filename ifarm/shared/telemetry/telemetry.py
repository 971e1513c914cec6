"""
OpenTelemetry tracing setup for the access control service.

Request spans come from the FastAPI instrumentation; database and Redis
spans (access state loads, authz_version bumps, cached state reads) nest
under them. Decision spans are added with @traced (see tracing.py).
"""

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import \
    OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import (DEPLOYMENT_ENVIRONMENT, SERVICE_NAME,
                                         SERVICE_VERSION, Resource)
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (BatchSpanProcessor,
                                            ConsoleSpanExporter)
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from sqlalchemy.ext.asyncio import AsyncEngine

from ifarm.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

EXPORTERS = ("console", "otlp", "none")


class TelemetryConfig:
    """
    Tracer provider plus the instrumentations this service uses.

    Exporters:
    - console: spans printed to stdout (development)
    - otlp: gRPC OTLP collector (Tempo, Jaeger, Datadog agent, ...)
    - none: spans are created for log correlation but not exported
    """

    def __init__(
        self,
        service_name: str,
        service_version: str,
        environment: str = "development",
        enabled: bool = True,
    ):
        self.service_name = service_name
        self.service_version = service_version
        self.environment = environment
        self.enabled = enabled
        self.tracer_provider: TracerProvider | None = None

    def setup_telemetry(
        self,
        exporter_type: str = "console",
        otlp_endpoint: str | None = None,
        sample_rate: float = 1.0,
    ) -> TracerProvider | None:
        """
        Create and register the global tracer provider.

        Args:
            exporter_type: "console", "otlp" or "none"
            otlp_endpoint: OTLP gRPC endpoint (e.g. "http://localhost:4317")
            sample_rate: Fraction of new traces sampled (0.0-1.0); child spans
                follow their parent's decision

        Returns:
            TracerProvider instance or None if disabled
        """
        if not self.enabled:
            logger.info("Telemetry disabled")
            return None

        resource = Resource(
            attributes={
                SERVICE_NAME: self.service_name,
                SERVICE_VERSION: self.service_version,
                DEPLOYMENT_ENVIRONMENT: self.environment,
            }
        )
        self.tracer_provider = TracerProvider(
            resource=resource,
            sampler=ParentBased(TraceIdRatioBased(sample_rate)),
        )

        if exporter_type == "otlp" and otlp_endpoint:
            # TLS unless the endpoint is plain http://
            exporter = OTLPSpanExporter(
                endpoint=otlp_endpoint, insecure=otlp_endpoint.startswith("http://")
            )
            logger.info(f"Using OTLP span exporter: {otlp_endpoint}")
        elif exporter_type == "none":
            exporter = None
            logger.info("Telemetry enabled without an exporter")
        else:
            if exporter_type != "console":
                logger.warning(f"Unknown exporter type '{exporter_type}', using console")
            exporter = ConsoleSpanExporter()

        if exporter is not None:
            self.tracer_provider.add_span_processor(BatchSpanProcessor(exporter))
        trace.set_tracer_provider(self.tracer_provider)

        logger.info(
            f"OpenTelemetry initialized: service={self.service_name}, "
            f"version={self.service_version}, exporter={exporter_type}, "
            f"sample_rate={sample_rate}"
        )
        return self.tracer_provider

    def instrument_fastapi(self, app: FastAPI) -> None:
        """Trace every HTTP request except health probes"""
        if not self.tracer_provider:
            return
        FastAPIInstrumentor.instrument_app(
            app, tracer_provider=self.tracer_provider, excluded_urls="/health"
        )
        logger.info("FastAPI instrumentation enabled")

    def instrument_sqlalchemy(self, engine: AsyncEngine) -> None:
        """Trace queries issued through the async engine"""
        if not self.tracer_provider:
            return
        SQLAlchemyInstrumentor().instrument(
            engine=engine.sync_engine,
            tracer_provider=self.tracer_provider,
            enable_commenter=True,
        )
        logger.info("SQLAlchemy instrumentation enabled")

    def instrument_redis(self) -> None:
        """Trace access state cache commands"""
        if not self.tracer_provider:
            return
        RedisInstrumentor().instrument(tracer_provider=self.tracer_provider)
        logger.info("Redis instrumentation enabled")

    def instrument_logging(self) -> None:
        """Add trace_id/span_id to log records"""
        if not self.tracer_provider:
            return
        LoggingInstrumentor().instrument(tracer_provider=self.tracer_provider)
        logger.info("Logging instrumentation enabled")

    def shutdown(self) -> None:
        """Flush remaining spans"""
        if self.tracer_provider:
            self.tracer_provider.shutdown()
            logger.info("Telemetry shutdown complete")


_telemetry: TelemetryConfig | None = None


def get_telemetry() -> TelemetryConfig | None:
    return _telemetry


def set_telemetry(telemetry: TelemetryConfig | None) -> None:
    global _telemetry
    _telemetry = telemetry
