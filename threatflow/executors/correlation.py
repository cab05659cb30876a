from __future__ import annotations

from typing import Any, Dict

from ..contracts import StepDefinition, StepType
from .base import StepExecutor, StepOutcome, error


class ThreatCorrelationExecutor(StepExecutor):
    """Correlate a stored threat with the rest of the threat store.

    ``config.stop_if_empty`` ends the workflow early when nothing correlates.
    """

    step_type = StepType.THREAT_CORRELATION

    async def run(self, step: StepDefinition, parameters: Dict[str, Any]) -> StepOutcome:
        threat_id = step.config.get("threat_id") or parameters.get("threatId")
        if not threat_id:
            return error("threatId is required for threat correlation")
        correlation_type = step.config.get("correlation_type", "similar")

        correlated = await self.context.threat_store.correlate(threat_id, correlation_type)
        outcome: StepOutcome = {
            "success": True,
            "threat_id": threat_id,
            "correlation_type": correlation_type,
            "correlated_threats": [t.to_record() for t in correlated],
            "count": len(correlated),
        }
        if not correlated and step.config.get("stop_if_empty"):
            outcome["stop"] = True
        return outcome
