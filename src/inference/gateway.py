"""
Inference gateway, the single point where prompts leave the process.

Wraps the OpenAI chat completions API. Callers get raw text back and are
expected to parse it through ``src.inference.response_parser``; any
transport or provider failure surfaces as ``InferenceError`` so resolver and
matcher can fall back at their own boundary.
"""

import logging
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from src.config import ModelConfig, settings

logger = logging.getLogger(__name__)


class InferenceError(Exception):
    """Raised when the inference service is unconfigured or a call fails."""


class InferenceGateway:
    """Thin async wrapper over a chat completion model returning raw text."""

    def __init__(
        self,
        config: Optional[ModelConfig] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self._config = config or settings.model
        self._client = client
        if self._client is None and self._config.llm_api_key:
            self._client = AsyncOpenAI(
                api_key=self._config.llm_api_key,
                timeout=self._config.llm_timeout_sec,
            )

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Send one prompt and return the model's text.

        Raises:
            InferenceError: If no client is configured, the call fails,
                or the response carries no text.
        """
        if self._client is None:
            raise InferenceError("Inference service is not configured (OPENAI_API_KEY unset)")

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await self._client.chat.completions.create(
                model=self._config.llm_model,
                messages=messages,
                temperature=self._config.llm_temperature,
                max_tokens=max_tokens or self._config.llm_max_tokens,
            )
        except OpenAIError as exc:
            logger.warning("Inference call failed: %s", exc)
            raise InferenceError(str(exc)) from exc

        if not response.choices:
            raise InferenceError("Inference response contained no choices")
        content = response.choices[0].message.content
        if not content:
            raise InferenceError("Inference response contained no text")
        logger.debug("Inference returned %d chars", len(content))
        return content
