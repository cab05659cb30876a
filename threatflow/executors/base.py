"""Base step executor and the collaborators executors share."""

from __future__ import annotations

import abc
import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, ClassVar, Dict, Optional

import httpx

from ..config import HTTPConfig, LLMConfig
from ..contracts import StepDefinition, StepType
from ..llm import ChatMessage, InferenceRequest, LanguageModel, PydanticAILanguageModel
from ..storage import KeyValueStore
from ..threats import ThreatStore

logger = logging.getLogger(__name__)

StepOutcome = Dict[str, Any]


@dataclass
class ExecutionContext:
    """External collaborators handed to every executor."""

    store: KeyValueStore
    language_model: LanguageModel = field(default_factory=PydanticAILanguageModel)
    threat_store: Optional[ThreatStore] = None
    http_client: Optional[httpx.AsyncClient] = None
    llm: LLMConfig = field(default_factory=LLMConfig)
    http: HTTPConfig = field(default_factory=HTTPConfig)

    def __post_init__(self) -> None:
        if self.threat_store is None:
            self.threat_store = ThreatStore(self.store)


def error(message: str) -> StepOutcome:
    return {"error": message}


def format_parameters(parameters: Dict[str, Any]) -> str:
    return json.dumps(parameters, indent=2, sort_keys=True, default=str)


class StepExecutor(metaclass=abc.ABCMeta):
    """Handler implementing the behaviour of one step type.

    Subclasses implement :meth:`run`. :meth:`execute` never raises: any
    exception from :meth:`run` is logged and returned as ``{"error": ...}``.
    """

    step_type: ClassVar[StepType]

    def __init__(self, context: ExecutionContext) -> None:
        self.context = context

    async def execute(
        self, step: StepDefinition, parameters: Dict[str, Any]
    ) -> StepOutcome:
        try:
            return await self.run(step, parameters)
        except Exception as e:
            logger.warning(f"Step {step.name} ({self.step_type.value}) failed: {e}")
            return error(str(e) or type(e).__name__)

    @abc.abstractmethod
    async def run(
        self, step: StepDefinition, parameters: Dict[str, Any]
    ) -> StepOutcome:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Helpers shared by concrete executors
    @asynccontextmanager
    async def http_client(self) -> AsyncIterator[httpx.AsyncClient]:
        """Yield the shared client, or a short-lived one when none is configured."""
        if self.context.http_client is not None:
            yield self.context.http_client
            return
        async with httpx.AsyncClient(timeout=self.context.http.timeout) as client:
            yield client

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Send a system/user prompt pair to the language model."""
        request = InferenceRequest(
            messages=[
                ChatMessage(role="system", content=system_prompt),
                ChatMessage(role="user", content=user_prompt),
            ],
            max_tokens=self.context.llm.max_tokens,
            temperature=self.context.llm.temperature,
        )
        result = await self.context.language_model.run(self.context.llm.model, request)
        return result.response
