import logging
from typing import List, Dict, Any

import httpx

from ..config import settings

logger = logging.getLogger("qbank.llm")


class LLMError(RuntimeError):
    """Raised when both the primary and the fallback model fail."""


class LLMClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        fallback_model: str | None = None,
        timeout: float = 60.0,
    ):
        self.api_key = api_key or settings.openai_api_key.get_secret_value()
        self.base_url = (base_url or settings.openai_base_url).rstrip("/")
        self.model = model or settings.llm_model
        self.fallback_model = fallback_model or settings.llm_fallback_model
        self.timeout = timeout

    async def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.2,
    ) -> str:
        """
        Return the assistant's reply text for a conversation.

        Tries the primary model first and retries once on the fallback model
        if the primary call fails for any transport or response reason.
        """
        try:
            return await self._complete_with(self.model, messages, temperature)
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as exc:
            logger.warning(
                "Primary model %s failed (%s); trying %s",
                self.model,
                type(exc).__name__,
                self.fallback_model,
            )

        try:
            return await self._complete_with(self.fallback_model, messages, temperature)
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as exc:
            logger.error("Fallback model %s failed: %s", self.fallback_model, exc)
            raise LLMError(f"Completion failed: {type(exc).__name__}") from exc

    async def _complete_with(
        self,
        model: str,
        messages: List[Dict[str, str]],
        temperature: float,
    ) -> str:
        payload: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        resp.raise_for_status()
        data = resp.json()
        return data["choices"][0]["message"]["content"] or ""
