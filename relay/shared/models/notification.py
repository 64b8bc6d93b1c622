"""
Notification Models

Pydantic model for the Slack incoming-webhook payload.
Block Kit reference: https://docs.slack.dev/block-kit/
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class NotificationPayload(BaseModel):
    """
    Slack message posted for every accepted email.

    `attachments` is Slack's legacy secondary-content field, used for
    the colored per-file blocks; it is omitted from the JSON when unset.
    """

    model_config = ConfigDict(frozen=True)

    blocks: list[dict[str, Any]] = Field(
        ...,
        min_length=1,
        description="Top-level Block Kit blocks",
    )
    attachments: list[dict[str, Any]] | None = Field(
        default=None,
        description="Legacy attachments carrying per-file blocks",
    )

    def to_json(self) -> dict[str, Any]:
        """Serialize to the JSON body expected by the webhook."""
        return self.model_dump(exclude_none=True)

    def block_types(self) -> list[str]:
        """Ordered block type names, handy for logging."""
        return [block.get("type", "") for block in self.blocks]
