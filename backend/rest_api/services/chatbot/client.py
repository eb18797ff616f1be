"""
HTTP client for the Gemini generateContent REST API.
"""

import asyncio
from typing import Optional

import httpx

from shared.config.logging import chatbot_logger as logger
from shared.config.settings import settings


class AssistantError(Exception):
    """The assistant returned no usable answer."""


class GeminiClient:
    """
    Thin async client for `models/{model}:generateContent`.

    One pooled httpx.AsyncClient is created lazily (under a lock) and closed
    on application shutdown.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.model = model or settings.gemini_model
        self.base_url = (base_url or settings.gemini_api_url).rstrip("/")
        self.timeout = timeout or settings.chatbot_timeout
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        # Fast path: client already initialized
        if self._client is not None and not self._client.is_closed:
            return self._client

        async with self._client_lock:
            if self._client is None or self._client.is_closed:
                self._client = httpx.AsyncClient(
                    timeout=self.timeout,
                    limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
                )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def generate(
        self,
        message: str,
        history: list[dict[str, str]],
        system_instruction: str,
    ) -> str:
        """
        Send the conversation and return the model's text.

        Args:
            message: New user message.
            history: Prior turns as {"role": "user" | "model", "content": str}.
            system_instruction: System prompt plus platform context.

        Raises:
            httpx.HTTPError: transport failure or non-2xx response
            AssistantError: response without any text candidate
        """
        contents = [
            {"role": turn["role"], "parts": [{"text": turn["content"]}]}
            for turn in history
        ]
        contents.append({"role": "user", "parts": [{"text": message}]})

        client = await self._get_client()
        response = await client.post(
            f"{self.base_url}/models/{self.model}:generateContent",
            headers={"x-goog-api-key": self.api_key},
            json={
                "systemInstruction": {"parts": [{"text": system_instruction}]},
                "contents": contents,
            },
        )
        response.raise_for_status()
        return self._extract_text(response.json())

    @staticmethod
    def _extract_text(data: dict) -> str:
        for candidate in data.get("candidates") or []:
            parts = (candidate.get("content") or {}).get("parts") or []
            text = "".join(part.get("text", "") for part in parts).strip()
            if text:
                return text
        logger.warning("Assistant returned no text", finish=data.get("promptFeedback"))
        raise AssistantError("empty response")


# Global client instance
gemini_client = GeminiClient()


async def close_gemini_client() -> None:
    """Close the global client. Called from the application lifespan."""
    await gemini_client.close()


def get_assistant_client() -> GeminiClient:
    """FastAPI dependency returning the shared assistant client."""
    return gemini_client
