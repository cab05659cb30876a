"""Language-model backed steps."""

from __future__ import annotations

from typing import Any, Dict, List

from ..contracts import StepDefinition, StepType
from .base import StepExecutor, StepOutcome, format_parameters

ANALYST_SYSTEM_PROMPT = """You are an expert cybersecurity analyst AI. Analyze the provided data and cover:
1. Threat Classification: Categorize the threat (malware, phishing, DDoS, etc.)
2. Risk Assessment: Rate the risk level (Low/Medium/High/Critical)
3. Threat Indicators: List key indicators of compromise (IOCs)
4. Impact Analysis: Assess potential business impact
5. Mitigation Recommendations: Provide specific actionable steps
6. Related Threats: Identify similar threats or attack patterns"""

RESPONDER_SYSTEM_PROMPT = """You are an incident response lead. Produce an action plan with these parts:
1. Immediate Actions
2. Containment
3. Eradication
4. Recovery
5. Lessons Learned
Prefix every concrete task with "Action:" or "Step:" on its own line."""

ACTION_MARKERS = ("Action:", "Step:")


def extract_actions(text: str) -> List[str]:
    """Return the stripped lines of ``text`` that carry an action marker."""
    return [
        line.strip()
        for line in text.splitlines()
        if any(marker in line for marker in ACTION_MARKERS)
    ]


class AIAnalysisExecutor(StepExecutor):
    """Ask the language model to analyse the workflow parameters."""

    step_type = StepType.AI_ANALYSIS

    async def run(self, step: StepDefinition, parameters: Dict[str, Any]) -> StepOutcome:
        system_prompt = step.config.get("system_prompt", ANALYST_SYSTEM_PROMPT)
        prompt = step.config.get("prompt", "Analyze the following data.")
        analysis = await self.complete(
            system_prompt, f"{prompt}\n\nParameters:\n{format_parameters(parameters)}"
        )
        return {"success": True, "analysis": analysis}


class ResponseGenerationExecutor(StepExecutor):
    """Request a multi-part response plan and pull out its action lines."""

    step_type = StepType.RESPONSE_GENERATION

    async def run(self, step: StepDefinition, parameters: Dict[str, Any]) -> StepOutcome:
        prompt = step.config.get("prompt", "Generate a response plan for this incident.")
        plan = await self.complete(
            step.config.get("system_prompt", RESPONDER_SYSTEM_PROMPT),
            f"{prompt}\n\nContext:\n{format_parameters(parameters)}",
        )
        actions = extract_actions(plan)
        return {"success": True, "response_plan": plan, "actions": actions}
