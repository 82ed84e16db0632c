# telemetry.py — OpenTelemetry instrumentation for the task board API
"""
Configures distributed tracing for incoming HTTP requests.
Exports to an OTLP collector when OTEL_EXPORTER_OTLP_ENDPOINT is set,
otherwise runs in no-op mode for development/testing.
"""
import os
import logging

logger = logging.getLogger("taskboard.telemetry")

# Service identity
SERVICE_NAME = os.getenv("OTEL_SERVICE_NAME", "taskboard-api")
SERVICE_VERSION = "1.0.0"
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
OTLP_ENDPOINT = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "")


def _build_provider(endpoint: str):
    """Create and register a tracer provider exporting to ``endpoint``."""
    from opentelemetry import trace
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor
    from opentelemetry.sdk.resources import Resource, SERVICE_NAME as RES_SVC_NAME
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

    resource = Resource.create({
        RES_SVC_NAME: SERVICE_NAME,
        "service.version": SERVICE_VERSION,
        "deployment.environment": ENVIRONMENT,
    })
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True)))
    trace.set_tracer_provider(provider)
    return provider


def setup_telemetry(app=None, endpoint: str = OTLP_ENDPOINT):
    """Initialise OpenTelemetry tracing and instrument FastAPI.

    Returns the tracer provider, or None when tracing stays disabled: no
    exporter endpoint, the optional SDK missing, or any failure while wiring
    it up. Startup never fails because of telemetry.
    """
    if not endpoint:
        logger.info("OpenTelemetry disabled (OTEL_EXPORTER_OTLP_ENDPOINT not set)")
        return None

    try:
        provider = _build_provider(endpoint)

        if app is not None:
            try:
                from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
                FastAPIInstrumentor.instrument_app(
                    app,
                    excluded_urls="health,ws",
                    tracer_provider=provider,
                )
                logger.info("FastAPI instrumented with OpenTelemetry")
            except ImportError:
                logger.warning("opentelemetry-instrumentation-fastapi not installed")

        logger.info(f"OpenTelemetry initialised → {endpoint}")
        return provider

    except ImportError:
        logger.info("OpenTelemetry SDK not installed — tracing disabled")
        return None
    except Exception as e:
        logger.error(f"OpenTelemetry setup failed: {e}")
        return None
