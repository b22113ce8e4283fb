"""OpenAI generation provider."""

from __future__ import annotations

from typing import Any

from openai import APIError, APITimeoutError, AsyncOpenAI, RateLimitError  # type: ignore

from tutorrag.core.models import ConversationTurn
from tutorrag.core.retry_config import RetryConfig
from tutorrag.generate._base import GeneratorMixin

_ROLES = {"user": "user", "model": "assistant"}


class OpenAIGenerator(GeneratorMixin):
    """Chat completions; ``json_output`` switches on ``response_format=json_object``."""

    _provider_name: str = "openai_generation"
    _retryable_exceptions: tuple[type[Exception], ...] = (
        RateLimitError,
        APIError,
        APITimeoutError,
        ConnectionError,
    )

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        retry_config: RetryConfig | None = None,
    ) -> None:
        super().__init__(model=model, retry_config=retry_config)
        self.client = AsyncOpenAI(api_key=api_key)

    async def generate(
        self,
        system_prompt: str,
        turns: list[ConversationTurn],
        *,
        json_output: bool = False,
    ) -> str:
        operation_logger = self._operation_logger(turns, json_output)
        operation_logger.debug("generation_started")

        messages = [{"role": "system", "content": system_prompt}]
        messages += [{"role": _ROLES[turn.role], "content": turn.text} for turn in turns]
        kwargs: dict[str, Any] = {"model": self.model, "messages": messages}
        if json_output:
            kwargs["response_format"] = {"type": "json_object"}

        response = await self._request(lambda: self.client.chat.completions.create(**kwargs))

        answer = response.choices[0].message.content or ""
        operation_logger.info("generation_completed", answer_length=len(answer))
        return answer
