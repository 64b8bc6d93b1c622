"""
FastAPI Server for Local Development

Serves the liveness probe and accepts raw MIME messages, routing them
through the same dispatch router as the Lambda. SES is mocked with moto;
the Slack webhook is real, so point RELAY_SLACK_WEBHOOK_URL at a test
channel (or a request bin).

Usage:
    RELAY_SLACK_WEBHOOK_URL=https://hooks.slack.com/services/... \\
    RELAY_WORKER_EMAIL=inbox@worker.example \\
    python -m scripts.local_api_server

    curl --data-binary @message.eml \\
        "http://localhost:8000/email?rcpt_to=inbox@worker.example"
"""

import os
from contextlib import asynccontextmanager

# Set environment for local mode BEFORE any other imports
os.environ["RELAY_SES_ENDPOINT_URL"] = "mock"
os.environ["RELAY_ENVIRONMENT"] = "development"
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

from moto import mock_aws

mock = mock_aws()
mock.start()

import structlog

# Configure logging
structlog.configure(
    processors=[
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

log = structlog.get_logger()

# Clear settings cache so new env vars take effect
from relay.shared.config import get_settings

get_settings.cache_clear()

import boto3
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from lambdas.health_check.handler import HEALTH_BODY
from lambdas.process_inbound_email.email_parser import build_inbound_message
from lambdas.process_inbound_email.router import handle
from relay.shared.tools.host import SESMailHost


def setup_local_ses() -> None:
    """Verify the worker identity in the mocked SES so forwards and replies go out."""
    settings = get_settings()
    ses = boto3.client("ses", region_name=settings.aws_region)
    ses.verify_email_identity(EmailAddress=settings.worker_email.strip())
    log.info("local_ses_ready", worker_email=settings.worker_email)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    setup_local_ses()
    yield
    log.info("shutting_down")


app = FastAPI(
    title="Inbound Email Relay (local)",
    description="Local intake for raw MIME messages",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/", response_class=PlainTextResponse)
async def root():
    """Health check endpoint."""
    return HEALTH_BODY


@app.post("/email")
async def receive_email(
    request: Request,
    mail_from: str | None = Query(default=None, description="Envelope sender"),
    rcpt_to: str | None = Query(default=None, description="Envelope recipient"),
):
    """
    Handle a raw MIME message posted as the request body.

    Envelope values default to the From / To headers of the message.
    """
    raw = await request.body()
    if not raw.strip():
        raise HTTPException(status_code=400, detail="Request body must be a raw MIME message")

    settings = get_settings()
    message = build_inbound_message(raw, mail_from=mail_from, rcpt_to=rcpt_to)
    host = SESMailHost(message, settings)

    outcome = handle(message, settings, host)

    return JSONResponse(
        status_code=200 if outcome.is_accepted else 400,
        content={
            "recipient": message.rcpt_to,
            "rejections": host.rejections,
            **outcome.to_dict(),
        },
    )


if __name__ == "__main__":
    import uvicorn

    log.info("starting_local_api_server", host="0.0.0.0", port=8000)
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
