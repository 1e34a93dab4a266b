from carecadence.logger import logger
from carecadence.config.settings import (
    OPENAI_PRIMARY_API_KEY,
    OPENAI_PRIMARY_BASE_URL,
    LLM_INSIGHTS_MODEL,
)
from carecadence.llm.base import LLMClient, LLMMessage
from openai import AsyncOpenAI
from typing import Any, List


class OpenAIClient(LLMClient):
    def __init__(
        self,
        api_key: str | None = OPENAI_PRIMARY_API_KEY,
        base_url: str = OPENAI_PRIMARY_BASE_URL,
        model: str = LLM_INSIGHTS_MODEL,
        inst: str = "",
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.inst = inst
        self.client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.base_url
        )

    @staticmethod
    def _convert_context_to_openai(context: List[LLMMessage]) -> List[Any]:
        converted: List[Any] = []
        for item in context:
            if not isinstance(item, dict):
                continue
            role = item.get("role")
            if role in ("system", "user", "assistant"):
                converted.append({
                    "role": "developer" if role == "system" else role,
                    "content": item.get("content", ""),
                })
        return converted

    async def generate_response(
        self,
        context: List[LLMMessage],
        append_inst: str | None = None,
    ) -> str:
        logger.trace(f"LLM请求发起 BaseUrl:{self.base_url}; Model:{self.model}; Context:{context}")
        response = await self.client.responses.create(
            model=self.model,
            instructions=self.inst + (append_inst or ""),
            input=self._convert_context_to_openai(context),
        )
        logger.trace(f"LLM请求收到响应: {response}")
        return response.output_text or ""
