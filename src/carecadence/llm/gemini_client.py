import asyncio
from typing import Any, Dict, List

from google import genai
from google.genai import types

from carecadence.config.settings import GEMINI_API_KEY, GEMINI_BASE_URL, LLM_INSIGHTS_MODEL
from carecadence.llm.base import LLMClient, LLMMessage
from carecadence.logger import logger


class GeminiClient(LLMClient):
    API_RETRY_DELAYS_SECONDS = [5.0, 15.0]

    def __init__(self, base_url: str | None = GEMINI_BASE_URL, api_key: str | None = GEMINI_API_KEY, model: str = LLM_INSIGHTS_MODEL, inst: str = "") -> None:
        self.model = model
        self.inst = inst
        self.client = genai.Client(api_key=api_key, http_options={"base_url": base_url} if base_url else None)

    @staticmethod
    def _is_retryable_error(error: Exception) -> bool:
        msg = str(error).lower()
        signals = [
            "429",
            "rate limit",
            "resource_exhausted",
            "temporarily unavailable",
            "timeout",
            "timed out",
            "503",
            "502",
            "504",
        ]
        return any(s in msg for s in signals)

    @staticmethod
    def _convert_context_to_gemini(context: List[LLMMessage]) -> tuple[List[Dict[str, Any]], str]:
        converted: List[Dict[str, Any]] = []
        system_parts: List[str] = []
        for item in context:
            role = item.get("role")
            content = item.get("content", "")
            if role == "system":
                system_parts.append(content)
            elif role == "assistant":
                converted.append({"role": "model", "parts": [{"text": content}]})
            else:
                converted.append({"role": "user", "parts": [{"text": content}]})
        return converted, "\n\n".join(system_parts)

    async def generate_response(
        self,
        context: List[LLMMessage],
        append_inst: str | None = None,
    ) -> str:
        contents, system_text = self._convert_context_to_gemini(context)
        instruction = "\n\n".join(p for p in (self.inst + (append_inst or ""), system_text) if p)
        config = types.GenerateContentConfig(system_instruction=instruction or None)

        for attempt, delay in enumerate([0.0, *self.API_RETRY_DELAYS_SECONDS]):
            if delay:
                await asyncio.sleep(delay)
            try:
                logger.trace(f"Gemini请求发起 Model:{self.model}; Contents:{contents}")
                response = await self.client.aio.models.generate_content(
                    model=self.model,
                    contents=contents,
                    config=config,
                )
                logger.trace(f"Gemini请求收到响应: {response}")
                return response.text or ""
            except Exception as e:
                if attempt >= len(self.API_RETRY_DELAYS_SECONDS) or not self._is_retryable_error(e):
                    raise
                logger.warning(f"Gemini 请求失败, 准备重试({attempt + 1}): {e}")
        return ""
