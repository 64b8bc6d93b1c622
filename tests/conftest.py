"""
Pytest Configuration and Shared Fixtures

Provides moto AWS mocking, relay settings, sample emails and a
recording mail host.
"""

import os
from typing import Any, Callable

import boto3
import pytest
from moto import mock_aws

# Set test environment before importing application modules
os.environ["RELAY_SLACK_WEBHOOK_URL"] = "https://hooks.slack.com/services/T000/B000/XXXX"
os.environ["RELAY_WORKER_EMAIL"] = "inbox@worker.example"
os.environ["RELAY_AWS_REGION"] = "us-west-2"
os.environ["AWS_DEFAULT_REGION"] = "us-west-2"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"

from relay.shared.config import Settings, get_settings
from relay.shared.models.message import InboundMessage
from tests.mocks.mock_host import RecordingMailHost
from tests.utils.event_generator import MockEmailGenerator

WORKER_EMAIL = "inbox@worker.example"
WEBHOOK_URL = "https://hooks.slack.com/services/T000/B000/XXXX"


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Each test sees the environment as it is now."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# --- Settings Fixtures ---


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Factory for Settings snapshots with test defaults."""

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "slack_webhook_url": WEBHOOK_URL,
            "worker_email": WORKER_EMAIL,
            "forward_email": "",
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def settings(make_settings) -> Settings:
    """Default settings: no forwarding, all toggles off."""
    return make_settings()


# --- Email Fixtures ---


@pytest.fixture
def email_generator() -> MockEmailGenerator:
    """Seeded generator for deterministic emails."""
    return MockEmailGenerator(seed=42)


@pytest.fixture
def plain_raw_email(email_generator: MockEmailGenerator) -> bytes:
    """Plain-text email from alice@ext.com to the worker."""
    return email_generator.build_raw_email(
        sender="alice@ext.com",
        to=WORKER_EMAIL,
        subject="Hello",
        text="Hi there",
        message_id="<original-123@ext.com>",
    )


@pytest.fixture
def inbound_message(plain_raw_email: bytes) -> InboundMessage:
    """Envelope for the plain-text email."""
    return InboundMessage(
        mail_from="alice@ext.com",
        rcpt_to=WORKER_EMAIL,
        raw=plain_raw_email,
        subject="Hello",
        message_id="<original-123@ext.com>",
    )


@pytest.fixture
def host() -> RecordingMailHost:
    """Recording mail host with no failures."""
    return RecordingMailHost()


# --- AWS Mocking Fixtures ---


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for moto."""
    return {
        "aws_access_key_id": "testing",
        "aws_secret_access_key": "testing",
        "region_name": "us-west-2",
    }


@pytest.fixture
def mock_ses(aws_credentials):
    """Create a mocked SES client with the worker identity verified."""
    with mock_aws():
        ses = boto3.client("ses", **aws_credentials)
        ses.verify_email_identity(EmailAddress=WORKER_EMAIL)
        yield ses


@pytest.fixture
def mock_s3(aws_credentials):
    """Create a mocked S3 bucket for stored inbound emails."""
    with mock_aws():
        s3 = boto3.client("s3", **aws_credentials)
        s3.create_bucket(
            Bucket="test-inbound-emails",
            CreateBucketConfiguration={"LocationConstraint": "us-west-2"},
        )
        yield s3
