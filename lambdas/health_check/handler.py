"""
HealthCheck Lambda Handler

Liveness probe for the email worker, served through a Lambda function
URL or API Gateway. Independent of the email pipeline: it reads only
ProbeSettings, so a misconfigured webhook does not fail the probe.
"""

import time
from typing import Any

import structlog
from pydantic import ValidationError

from relay.shared.config import ProbeSettings
from relay.shared.logging_config import configure_logging

log = structlog.get_logger()

HEALTH_BODY = "Email worker is running"


def _debug_enabled() -> bool:
    try:
        return ProbeSettings().debug
    except ValidationError as e:
        log.warning("invalid_probe_configuration", errors=e.errors(include_url=False))
        return False


def _request_details(event: dict[str, Any]) -> dict[str, Any]:
    """Path and method from either a function URL or a REST API event."""
    http = event.get("requestContext", {}).get("http", {})
    return {
        "path": event.get("rawPath") or event.get("path"),
        "method": http.get("method") or event.get("httpMethod"),
    }


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    AWS Lambda handler for the liveness probe.

    Returns:
        200 with a plain-text body
    """
    configure_logging("DEBUG" if _debug_enabled() else "INFO")

    log.debug(
        "email_worker_received_request",
        timestamp=int(time.time() * 1000),
        **_request_details(event or {}),
    )

    return {
        "statusCode": 200,
        "headers": {"Content-Type": "text/plain"},
        "body": HEALTH_BODY,
    }
