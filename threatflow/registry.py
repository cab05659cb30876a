"""Workflow definition registry and the built-in workflow types."""

from __future__ import annotations

from typing import Dict, List, Optional

from .contracts import StepDefinition, StepType, WorkflowDefinition

NVD_RECENT_CVES_URL = "https://services.nvd.nist.gov/rest/json/cves/2.0?resultsPerPage=20"
CISA_KEV_URL = (
    "https://www.cisa.gov/sites/default/files/feeds/known_exploited_vulnerabilities.json"
)

_FEED_SOURCES = [
    {"name": "nvd", "url": NVD_RECENT_CVES_URL, "method": "GET"},
    {"name": "cisa-kev", "url": CISA_KEV_URL, "method": "GET"},
]


def _step(name: str, step_type: StepType, **config) -> StepDefinition:
    return StepDefinition(name=name, type=step_type, config=config)


BUILTIN_DEFINITIONS: Dict[str, WorkflowDefinition] = {
    "threat-analysis": WorkflowDefinition(
        name="Threat Analysis",
        description="Analyze a threat, correlate it with known threats and recommend a response",
        steps=[
            _step(
                "analyze_threat",
                StepType.AI_ANALYSIS,
                prompt="Collect the threat indicators and analyze the threat patterns.",
            ),
            _step(
                "correlate_threats",
                StepType.THREAT_CORRELATION,
                correlation_type="similar",
            ),
            _step(
                "generate_recommendations",
                StepType.RESPONSE_GENERATION,
                prompt="Assess the risk level and generate recommendations for this threat.",
            ),
        ],
    ),
    "incident-response": WorkflowDefinition(
        name="Incident Response",
        description="Assess, contain, eradicate, recover and document an incident",
        steps=[
            _step("collect_evidence", StepType.DATA_COLLECTION, sources=[]),
            _step(
                "assess_severity",
                StepType.AI_ANALYSIS,
                prompt="Assess the incident severity and the scope of compromise.",
            ),
            _step(
                "plan_response",
                StepType.RESPONSE_GENERATION,
                prompt=(
                    "Plan how to contain the threat, remove it from the environment, "
                    "restore normal operations and document lessons learned."
                ),
            ),
            _step(
                "notify_responders",
                StepType.NOTIFICATION,
                title="Incident response plan ready",
                channel="incident",
                severity="high",
            ),
        ],
    ),
    "security-report": WorkflowDefinition(
        name="Security Report",
        description="Gather security data and deliver a report to stakeholders",
        steps=[
            _step("gather_security_data", StepType.DATA_COLLECTION, sources=_FEED_SOURCES),
            _step(
                "generate_report",
                StepType.AI_ANALYSIS,
                prompt="Analyze the security metrics and write a formatted security report.",
            ),
            _step(
                "deliver_report",
                StepType.NOTIFICATION,
                title="Security report",
                channel="reports",
            ),
        ],
    ),
    "vulnerability-scan": WorkflowDefinition(
        name="Vulnerability Scan",
        description="Pull vulnerability feeds, prioritize findings and publish them",
        steps=[
            _step(
                "fetch_vulnerability_feeds",
                StepType.DATA_COLLECTION,
                sources=_FEED_SOURCES,
                stop_if_empty=True,
            ),
            _step(
                "prioritize_vulnerabilities",
                StepType.AI_ANALYSIS,
                prompt="Validate the findings and prioritize the vulnerabilities by exploitability.",
            ),
            _step("publish_findings", StepType.INTEGRATION, type="api"),
        ],
    ),
}


class DefinitionRegistry:
    """Maps workflow types to their definitions."""

    def __init__(self, definitions: Optional[Dict[str, WorkflowDefinition]] = None) -> None:
        self._definitions: Dict[str, WorkflowDefinition] = dict(definitions or {})

    def register(self, workflow_type: str, definition: WorkflowDefinition) -> None:
        self._definitions[workflow_type] = definition

    def resolve(self, workflow_type: str) -> WorkflowDefinition | None:
        return self._definitions.get(workflow_type)

    def types(self) -> List[str]:
        return sorted(self._definitions)


def default_registry() -> DefinitionRegistry:
    """Registry preloaded with copies of the built-in definitions."""
    return DefinitionRegistry(
        {name: d.model_copy(deep=True) for name, d in BUILTIN_DEFINITIONS.items()}
    )
