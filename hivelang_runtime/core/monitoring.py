"""
Monitoring and Tracing Configuration Module.

Optional Pydantic Logfire integration for the capability runtime:
- a span around every capability invocation
- invocation outcomes and latency
- outbound HTTP made by the sandbox (httpx instrumentation)
- API endpoint tracing (FastAPI instrumentation)
- error tracking

Logfire is imported lazily and only once ``LOGFIRE_ENABLED`` is set, so every
helper here can be called unconditionally from library code. Only
identifiers, outcomes and durations are recorded; capability arguments,
credentials and results never are.
"""

import logging
import os
from contextlib import nullcontext
from typing import Any, ContextManager, Optional

from fastapi import FastAPI

logger = logging.getLogger(__name__)


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


# Logfire configuration from environment
LOGFIRE_ENABLED = _flag("LOGFIRE_ENABLED", "false")
LOGFIRE_TOKEN = os.getenv("LOGFIRE_TOKEN", "")
LOGFIRE_PROJECT_NAME = os.getenv("LOGFIRE_PROJECT_NAME", "hivelang-runtime")
LOGFIRE_ENVIRONMENT = os.getenv("LOGFIRE_ENVIRONMENT", "development")
LOGFIRE_SERVICE_NAME = os.getenv("LOGFIRE_SERVICE_NAME", "hivelang-runtime-server")
LOGFIRE_SERVICE_VERSION = os.getenv("LOGFIRE_SERVICE_VERSION", "0.1.0")
LOGFIRE_SAMPLE_RATE = float(os.getenv("LOGFIRE_SAMPLE_RATE", "1.0"))
LOGFIRE_TRACE_HTTPX = _flag("LOGFIRE_TRACE_HTTPX", "true")
LOGFIRE_TRACE_FASTAPI = _flag("LOGFIRE_TRACE_FASTAPI", "true")


def _logfire() -> Optional[Any]:
    """Return the logfire module when monitoring is enabled, else None."""
    if not LOGFIRE_ENABLED:
        return None
    import logfire

    return logfire


def initialize_logfire(app: FastAPI | None = None) -> None:
    """
    Configure Logfire and instrument httpx and, when given, the FastAPI app.

    Does nothing unless ``LOGFIRE_ENABLED`` is set and ``LOGFIRE_TOKEN`` is
    present. Instrumentation failures are logged and do not stop startup.

    Args:
        app: FastAPI application to instrument (optional).
    """
    logfire = _logfire()
    if logfire is None:
        logger.info("Logfire monitoring is disabled. Set LOGFIRE_ENABLED=true to enable.")
        return
    if not LOGFIRE_TOKEN:
        logger.warning("Logfire is enabled but LOGFIRE_TOKEN is not set; monitoring stays off.")
        return

    try:
        logfire.configure(
            token=LOGFIRE_TOKEN,
            service_name=LOGFIRE_SERVICE_NAME,
            service_version=LOGFIRE_SERVICE_VERSION,
            environment=LOGFIRE_ENVIRONMENT,
            sampling=logfire.SamplingOptions(head=LOGFIRE_SAMPLE_RATE),
        )
    except Exception as e:
        logger.error(f"Failed to initialize Logfire: {e}", exc_info=True)
        return

    instrumentations = []
    if LOGFIRE_TRACE_HTTPX:
        instrumentations.append(("HTTPX", lambda: logfire.instrument_httpx()))
    if LOGFIRE_TRACE_FASTAPI and app is not None:
        instrumentations.append(("FastAPI", lambda: logfire.instrument_fastapi(app=app)))
    for label, instrument in instrumentations:
        try:
            instrument()
            logger.info(f"Logfire: {label} instrumentation enabled")
        except Exception as e:
            logger.warning(f"Failed to instrument {label}: {e}")

    logger.info(
        f"Logfire monitoring initialized: project={LOGFIRE_PROJECT_NAME}, "
        f"environment={LOGFIRE_ENVIRONMENT}, service={LOGFIRE_SERVICE_NAME}"
    )


def capability_span(integration_id: str, capability: str) -> ContextManager[Any]:
    """
    Span wrapping one capability invocation; a null context when disabled.

    Sandbox requests made inside the span appear as its children once httpx
    is instrumented.
    """
    logfire = _logfire()
    if logfire is None:
        return nullcontext()
    return logfire.span("capability {integration_id}.{capability}", integration_id=integration_id, capability=capability)


def log_capability_invocation(
    integration_id: str,
    capability: str,
    success: bool,
    duration_ms: float,
    error_kind: Optional[str] = None,
) -> None:
    """
    Record the outcome of one capability invocation.

    Args:
        integration_id: The integration the capability belongs to
        capability: The capability name
        success: Whether the invocation succeeded
        duration_ms: Invocation duration in milliseconds
        error_kind: Failure classification when ``success`` is False
    """
    logfire = _logfire()
    if logfire is None:
        return
    try:
        logfire.info(
            "Capability invoked",
            integration_id=integration_id,
            capability=capability,
            success=success,
            duration_ms=duration_ms,
            error_kind=error_kind,
        )
    except Exception:
        logger.debug(f"Could not log capability invocation to Logfire: {integration_id}.{capability}")


def log_error(error_type: str, error_message: str, context: Optional[dict] = None) -> None:
    """
    Forward an error with context to Logfire.

    Args:
        error_type: Type of error
        error_message: Error message
        context: Additional context dictionary
    """
    logfire = _logfire()
    if logfire is None:
        return
    try:
        logfire.error(f"{error_type}: {error_message}", **(context or {}))
    except Exception:
        logger.debug(f"Could not log error to Logfire: {error_type}")
