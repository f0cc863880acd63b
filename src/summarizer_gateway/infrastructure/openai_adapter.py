"""OpenAI adapter — implements the LlmGateway port."""

from __future__ import annotations

import logging

from openai import APIError, AsyncOpenAI, AuthenticationError, RateLimitError

from summarizer_gateway.domain.exceptions import SummarizationFailed, SummarizationRateLimited

logger = logging.getLogger(__name__)


class OpenAIAdapter:
    """Concrete ``LlmGateway`` backed by the OpenAI chat-completions API."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", timeout: float = 60.0) -> None:
        self._client = AsyncOpenAI(api_key=api_key, max_retries=2, timeout=timeout)
        self._model = model

    @property
    def model_name(self) -> str:
        return self._model

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Send a system + user prompt and return the completion text."""
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=0.2,
                response_format={"type": "json_object"},
            )
        except RateLimitError as exc:
            logger.error("OpenAI RateLimitError: %s", exc)
            raise SummarizationRateLimited(
                "The summarization provider is throttling requests. Please try again later."
            ) from exc
        except AuthenticationError as exc:
            raise SummarizationFailed(
                "Invalid OpenAI API key. "
                "Set a valid key in the OPENAI_API_KEY environment variable."
            ) from exc
        except APIError as exc:
            raise SummarizationFailed(f"Summarization call failed: {exc}") from exc

        content = response.choices[0].message.content
        if not content:
            raise SummarizationFailed("The summarization provider returned an empty response.")
        return content

    async def close(self) -> None:
        """Release underlying HTTP resources."""
        await self._client.close()
