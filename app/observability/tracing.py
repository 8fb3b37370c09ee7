# ==== OPENTELEMETRY TRACING CONFIGURATION ==== #

"""
Tracing setup for Credit Gate.

Spans cover each validation, each quick status lookup and every SQL statement
issued by the concurrent reads. Export goes to an OTLP collector configured
through ``OTEL_*`` settings; FastAPI instrumentation is applied by the
application factory.
"""

from typing import Dict

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor

from app.observability.logging import ContextualLogger
from app.settings import Settings, settings as default_settings


logger = ContextualLogger(__name__)


# ==== TRACING INITIALIZATION ==== #

def init_tracing(config: Settings | None = None) -> bool:
    """
    Install the OTLP tracer provider and SQL instrumentation.

    Args:
        config: Settings to read; the global settings by default

    Returns:
        bool: False when no collector endpoint is configured
    """
    config = config or default_settings

    # ⚠️ Local runs and tests have no collector
    if not config.OTEL_EXPORTER_OTLP_ENDPOINT:
        return False

    provider = TracerProvider(resource=build_resource(config))
    exporter = OTLPSpanExporter(
        endpoint=config.OTEL_EXPORTER_OTLP_ENDPOINT,
        headers=parse_pairs(config.OTEL_EXPORTER_OTLP_HEADERS)
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    try:
        SQLAlchemyInstrumentor().instrument()
    except Exception as e:
        logger.warning("Failed to setup SQLAlchemy instrumentation", error=str(e))

    logger.info(
        "Tracing enabled",
        endpoint=config.OTEL_EXPORTER_OTLP_ENDPOINT,
        service=config.OTEL_SERVICE_NAME or config.SERVICE_NAME
    )
    return True


def build_resource(config: Settings) -> Resource:
    """Resource identifying this service; explicit OTEL attributes win."""
    attrs = {
        "service.name": config.OTEL_SERVICE_NAME or config.SERVICE_NAME,
        "service.version": config.SERVICE_VERSION,
        "deployment.environment": config.APP_ENV,
    }
    attrs.update(parse_pairs(config.OTEL_RESOURCE_ATTRIBUTES))
    return Resource.create(attrs)


def parse_pairs(raw: str | None) -> Dict[str, str]:
    """Parse ``key=value`` pairs separated by commas, skipping malformed parts."""
    pairs: Dict[str, str] = {}
    for part in (raw or "").split(","):
        key, sep, value = part.partition("=")
        if sep and key.strip():
            pairs[key.strip()] = value.strip()
    return pairs


def get_tracer(name: str) -> trace.Tracer:
    """Tracer for a module."""
    return trace.get_tracer(name)
