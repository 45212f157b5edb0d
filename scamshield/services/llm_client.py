import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from openai import AsyncOpenAI, OpenAIError

from scamshield.config import settings

logger = logging.getLogger(__name__)


class ModelInvocationError(Exception):
    """The judgment model could not be called or returned no text."""


@dataclass
class ModelResponse:
    text: str
    model: str
    tokens_used: int = 0


class JudgmentModel(Protocol):
    """Anything that turns a prompt into free-form text."""

    async def invoke(self, system_prompt: str, user_content: List[Dict[str, Any]]) -> ModelResponse: ...


class LLMClient:
    """
    Wrapper around the OpenAI client for scam judgments.

    Returns raw text only; decoding happens in the judgment parser.
    """

    def __init__(self, model: Optional[str] = None, client: Optional[AsyncOpenAI] = None):
        self._client = client
        self.model = model or settings.openai_model

    def _get_client(self) -> AsyncOpenAI:
        # Built lazily: the SDK refuses to construct without a key.
        if self._client is None:
            self._client = AsyncOpenAI(api_key=settings.openai_api_key or None)
        return self._client

    async def invoke(self, system_prompt: str, user_content: List[Dict[str, Any]]) -> ModelResponse:
        try:
            response = await self._get_client().chat.completions.create(
                model=self.model,
                response_format={"type": "json_object"},
                max_tokens=settings.openai_max_tokens,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content},
                ],
            )
        except OpenAIError as e:
            logger.warning(f"OpenAI API error: {e}")
            raise ModelInvocationError(f"judgment model call failed: {e}") from e

        if not response.choices or not response.choices[0].message.content:
            raise ModelInvocationError("judgment model returned no text")

        usage = response.usage
        return ModelResponse(
            text=response.choices[0].message.content,
            model=response.model or self.model,
            tokens_used=usage.total_tokens if usage else 0,
        )
