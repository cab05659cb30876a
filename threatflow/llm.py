"""Language model collaborator used by AI-backed workflow steps."""

from __future__ import annotations

import abc
import logging
from typing import List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic_ai import Agent
from pydantic_ai.models import Model

from .constants import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE

logger = logging.getLogger(__name__)


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class InferenceRequest(BaseModel):
    """Prompt and sampling settings for one completion."""

    messages: List[ChatMessage] = Field(default_factory=list)
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE


class InferenceResponse(BaseModel):
    response: str


class LanguageModel(metaclass=abc.ABCMeta):
    """Prompt in, text out. Failures surface as exceptions."""

    @abc.abstractmethod
    async def run(self, model_id: str, request: InferenceRequest) -> InferenceResponse:
        raise NotImplementedError


class PydanticAILanguageModel(LanguageModel):
    """Run completions through a pydantic-ai ``Agent``.

    System messages become the agent's system prompt and the remaining
    messages are joined into the user prompt. ``model`` overrides the
    ``model_id`` passed to :meth:`run`, which lets tests plug in
    ``pydantic_ai.models.test.TestModel``.
    """

    def __init__(self, model: Optional[Model] = None) -> None:
        self._model = model

    async def run(self, model_id: str, request: InferenceRequest) -> InferenceResponse:
        system_prompts = [m.content for m in request.messages if m.role == "system"]
        prompt = "\n\n".join(m.content for m in request.messages if m.role != "system")

        agent = Agent(self._model or model_id, system_prompt=system_prompts)
        logger.debug(
            f"Running {self._model or model_id} with {len(request.messages)} messages"
        )
        result = await agent.run(
            prompt,
            model_settings={
                "max_tokens": request.max_tokens,
                "temperature": request.temperature,
            },
        )
        return InferenceResponse(response=str(result.output))
