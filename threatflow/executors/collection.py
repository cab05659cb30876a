"""Data collection step fetching external feeds."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import httpx

from ..contracts import StepDefinition, StepType, utcnow
from .base import StepExecutor, StepOutcome

logger = logging.getLogger(__name__)


def _payload(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class DataCollectionExecutor(StepExecutor):
    """Fetch every configured source; a failing source is logged and skipped.

    Each entry of ``config.sources`` (or ``parameters.sources`` when the step
    configures none) is ``{name, url, method, headers}``.
    ``config.stop_if_empty`` ends the workflow early when nothing was collected.
    """

    step_type = StepType.DATA_COLLECTION

    async def run(self, step: StepDefinition, parameters: Dict[str, Any]) -> StepOutcome:
        sources: List[Dict[str, Any]] = (
            step.config.get("sources") or parameters.get("sources") or []
        )
        collected: List[Dict[str, Any]] = []
        failed: List[str] = []

        async with self.http_client() as client:
            for index, source in enumerate(sources):
                name = f"source_{index}"
                try:
                    name = source.get("name") or source.get("url") or name
                    response = await client.request(
                        source.get("method", "GET"),
                        source["url"],
                        headers=source.get("headers") or {},
                    )
                    response.raise_for_status()
                except (
                    httpx.HTTPError,
                    httpx.InvalidURL,
                    KeyError,
                    AttributeError,
                    TypeError,
                ) as e:
                    logger.warning(f"Skipping source {name}: {e!r}")
                    failed.append(name)
                    continue
                collected.append(
                    {
                        "source": name,
                        "data": _payload(response),
                        "fetched_at": utcnow().isoformat(),
                    }
                )

        outcome: StepOutcome = {
            "success": True,
            "collected": collected,
            "count": len(collected),
            "failed_sources": failed,
        }
        if not collected and step.config.get("stop_if_empty"):
            outcome["stop"] = True
        return outcome
