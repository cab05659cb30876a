from __future__ import annotations

from typing import Any, Dict

from ..contracts import StepDefinition, StepType
from .base import StepExecutor, StepOutcome, error


class IntegrationExecutor(StepExecutor):
    """Dispatch to a webhook, api or database sub-handler on ``config.type``.

    Only the webhook handler talks to the outside world; api and database
    integrations are acknowledged without side effects.
    """

    step_type = StepType.INTEGRATION

    async def run(self, step: StepDefinition, parameters: Dict[str, Any]) -> StepOutcome:
        kind = step.config.get("type")
        if kind == "webhook":
            return await self._webhook(step, parameters)
        if kind in ("api", "database"):
            return {
                "success": True,
                "integration": kind,
                "message": f"{kind} integration acknowledged",
            }
        return error(f"Unknown integration type: {kind}")

    async def _webhook(self, step: StepDefinition, parameters: Dict[str, Any]) -> StepOutcome:
        url = step.config.get("url") or parameters.get("webhookUrl")
        if not url:
            return error("Webhook integration requires a url")
        body = {"step": step.name, "parameters": parameters, "data": step.config.get("payload")}
        async with self.http_client() as client:
            response = await client.request(
                step.config.get("method", "POST"),
                url,
                json=body,
                headers=step.config.get("headers") or {},
            )
        return {
            "success": response.is_success,
            "integration": "webhook",
            "status_code": response.status_code,
            "body": response.text,
        }
