"""
Webhook Tools

Posts notification payloads to a Slack incoming webhook.
One attempt per call, bounded by a timeout.
"""

import httpx
import structlog

from relay.shared.exceptions import WebhookError
from relay.shared.models.notification import NotificationPayload

log = structlog.get_logger()

DEFAULT_TIMEOUT_SECONDS = 10.0


def post_notification(
    webhook_url: str,
    payload: NotificationPayload,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> None:
    """
    POST a notification payload as JSON.

    Args:
        webhook_url: Slack incoming webhook URL
        payload: Notification to send
        timeout: Overall request timeout in seconds

    Raises:
        WebhookError: On transport failure or a non-2xx response
    """
    log.debug(
        "posting_notification",
        block_types=payload.block_types(),
        attachment_count=len(payload.attachments or []),
    )

    try:
        response = httpx.post(
            webhook_url,
            json=payload.to_json(),
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        log.error(
            "webhook_rejected_payload",
            status_code=e.response.status_code,
            response_text=e.response.text[:200],
        )
        raise WebhookError(
            status_code=e.response.status_code,
            error_message=e.response.text[:200] or str(e),
        ) from e
    except httpx.HTTPError as e:
        log.error("webhook_request_failed", error=str(e), error_type=type(e).__name__)
        raise WebhookError(error_message=str(e)) from e

    log.info("notification_sent", status_code=response.status_code)
