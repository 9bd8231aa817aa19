"""
OpenTelemetry instrumentation for FastAPI

Creates spans for incoming requests through the globally registered tracer
provider. Nothing installs an exporter here; without a provider configured
by the deployment the spans are no-ops.
"""

from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from task_events.core.logger import logger


def instrument_app(app):
    """
    Instrument FastAPI application with OpenTelemetry for automatic span creation.

    Args:
        app: FastAPI application instance
    """
    try:
        FastAPIInstrumentor.instrument_app(app, excluded_urls="health")
        logger.info("FastAPI instrumented with OpenTelemetry")
    except Exception as e:
        logger.error("Failed to instrument application", error=e)
