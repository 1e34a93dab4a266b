from abc import ABC, abstractmethod
from typing import List, Literal, TypedDict

__all__ = ["LLMClient", "LLMMessage"]


class LLMMessage(TypedDict):
    role: Literal["system", "user", "assistant"]
    content: str


class LLMClient(ABC):
    """文本生成接口，对调用方是一次请求-响应"""

    @abstractmethod
    async def generate_response(
        self,
        context: List[LLMMessage],
        append_inst: str | None = None,
    ) -> str:
        pass
