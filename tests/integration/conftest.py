"""
Integration test fixtures and configuration.

Integration tests run the Lambda handler against moto-backed SES and S3
with the Slack webhook patched at the HTTP layer.
"""

from unittest.mock import patch

import boto3
import httpx
import pytest
from moto import mock_aws

INBOUND_BUCKET = "relay-inbound-integration"


@pytest.fixture
def relay_aws(aws_credentials):
    """
    Mocked AWS environment for the relay.

    The worker address is a verified SES identity; raw messages can be
    stored in the inbound bucket.
    """
    with mock_aws():
        ses = boto3.client("ses", **aws_credentials)
        s3 = boto3.client("s3", **aws_credentials)

        ses.verify_email_identity(EmailAddress="inbox@worker.example")
        s3.create_bucket(
            Bucket=INBOUND_BUCKET,
            CreateBucketConfiguration={"LocationConstraint": "us-west-2"},
        )

        yield {"ses": ses, "s3": s3, "bucket": INBOUND_BUCKET}


@pytest.fixture
def slack_webhook():
    """
    Patch the webhook POST at the HTTP layer.

    Set `.return_value` to a different response to simulate failures.
    """
    with patch("relay.shared.tools.webhook.httpx.post") as mock_post:
        mock_post.return_value = httpx.Response(
            200,
            text="ok",
            request=httpx.Request("POST", "https://hooks.slack.com/services/T000/B000/XXXX"),
        )
        yield mock_post


@pytest.fixture
def sent_count(relay_aws):
    """Callable returning how many messages SES accepted in this mocked session."""

    def _count() -> int:
        return int(relay_aws["ses"].get_send_quota()["SentLast24Hours"])

    return _count
