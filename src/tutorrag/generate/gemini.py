"""Google Gemini generation provider."""

from __future__ import annotations

from tutorrag.core.models import ConversationTurn
from tutorrag.core.retry_config import RetryConfig
from tutorrag.generate._base import GeneratorMixin


class GeminiGenerator(GeneratorMixin):
    """Gemini chat generation with ``system_instruction`` and optional JSON mode."""

    _provider_name: str = "gemini_generation"

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str = "gemini-2.0-flash",
        retry_config: RetryConfig | None = None,
    ) -> None:
        import httpx
        from google import genai
        from google.genai import errors as genai_errors

        # 4xx ClientError is not retried
        self._retryable_exceptions = (
            genai_errors.ServerError,
            httpx.ConnectError,
            httpx.NetworkError,
            httpx.TimeoutException,
            ConnectionError,
        )
        super().__init__(model=model, retry_config=retry_config)
        self._client = genai.Client(api_key=api_key) if api_key else genai.Client()

    async def generate(
        self,
        system_prompt: str,
        turns: list[ConversationTurn],
        *,
        json_output: bool = False,
    ) -> str:
        from google.genai import types

        operation_logger = self._operation_logger(turns, json_output)
        operation_logger.debug("generation_started")

        contents = [
            types.Content(role=turn.role, parts=[types.Part(text=turn.text)]) for turn in turns
        ]
        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            response_mime_type="application/json" if json_output else None,
        )
        response = await self._request(
            lambda: self._client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=config,
            )
        )

        text = response.text or ""
        operation_logger.info("generation_completed", answer_length=len(text))
        return text
