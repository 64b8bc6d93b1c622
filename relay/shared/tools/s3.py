"""
S3 Tools

Fetches raw inbound messages that a SES receipt rule stored in S3.
"""

import boto3
from botocore.exceptions import ClientError
import structlog

from relay.shared.config import get_settings

log = structlog.get_logger()


def _get_client():
    """Get S3 client."""
    settings = get_settings()
    return boto3.client("s3", **settings.s3_config)


def fetch_raw_email(bucket: str, key: str) -> bytes:
    """
    Fetch raw email content from S3.

    Used when SES stores emails in S3 rather than embedding in SNS.

    Args:
        bucket: S3 bucket name
        key: S3 object key

    Returns:
        Raw email content as bytes

    Raises:
        ClientError: If S3 get fails
    """
    log.info("fetching_email_from_s3", bucket=bucket, key=key)

    client = _get_client()

    try:
        response = client.get_object(Bucket=bucket, Key=key)
        content = response["Body"].read()
    except ClientError as e:
        log.error(
            "s3_fetch_failed",
            bucket=bucket,
            key=key,
            error=str(e),
        )
        raise

    log.debug(
        "email_fetched_from_s3",
        bucket=bucket,
        key=key,
        size_bytes=len(content),
    )

    return content
