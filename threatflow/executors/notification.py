"""Notification step: store a notification and optionally push it to a webhook."""

from __future__ import annotations

import logging
from typing import Any, Dict

from ..constants import NOTIFICATION_KEY_PREFIX
from ..contracts import StepDefinition, StepType, generate_id, utcnow
from .base import StepExecutor, StepOutcome

logger = logging.getLogger(__name__)


class NotificationExecutor(StepExecutor):
    step_type = StepType.NOTIFICATION

    def build_notification(
        self, step: StepDefinition, parameters: Dict[str, Any]
    ) -> Dict[str, Any]:
        config = step.config
        return {
            "id": generate_id(NOTIFICATION_KEY_PREFIX),
            "title": config.get("title", step.name),
            "message": config.get("message", f"Workflow step {step.name} reached"),
            "severity": parameters.get("severity", config.get("severity", "info")),
            "channel": config.get("channel", "default"),
            "recipients": list(config.get("recipients", [])),
            "parameters": parameters,
            "createdAt": utcnow().isoformat(),
        }

    async def run(self, step: StepDefinition, parameters: Dict[str, Any]) -> StepOutcome:
        notification = self.build_notification(step, parameters)
        await self.context.store.put(notification["id"], notification)

        webhook_url = step.config.get("webhook_url") or parameters.get("webhookUrl")
        delivered = False
        if webhook_url:
            async with self.http_client() as client:
                response = await client.post(webhook_url, json=notification)
                response.raise_for_status()
            delivered = True
            logger.info(f"Delivered notification {notification['id']} to {webhook_url}")

        return {
            "success": True,
            "notification_id": notification["id"],
            "delivered": delivered,
        }
