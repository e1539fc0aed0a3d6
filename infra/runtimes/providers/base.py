"""
LLM供应商基类

定义所有LLM供应商的统一接口。
所有具体供应商实现都必须继承此基类。
"""

from abc import ABC, abstractmethod
from typing import Any

from infra.runtimes.entities import LLMRequest, LLMReply, Provider


class MalformedReplyError(ValueError):
    """供应商返回了无法解析或为空的回复"""


class BaseProvider(ABC):
    """LLM供应商抽象基类"""

    def __init__(self, provider: Provider):
        """
        初始化供应商

        参数:
            provider: 供应商配置
        """
        self.provider = provider

    @property
    def id(self) -> str:
        return self.provider.id

    @abstractmethod
    async def completions(self, request: LLMRequest) -> LLMReply:
        """
        发送聊天请求 (抽象方法)

        参数:
            request: LLM请求

        返回:
            LLMReply: 归一化的LLM回复
        """
        pass

    @abstractmethod
    def _format_message_content(self, request: LLMRequest) -> Any:
        """
        将通用请求转换为供应商特定的用户消息格式 (抽象方法)

        参数:
            request: LLM请求（文本 + 可选图片）

        返回:
            任意类型: 供应商所需的消息表示
        """
        pass

    def _normalize(self, content: Any) -> LLMReply:
        """校验回复内容并转换为 LLMReply"""
        if not isinstance(content, str) or not content.strip():
            raise MalformedReplyError(f"供应商 {self.id} 返回空回复或非文本回复")
        return LLMReply(text=content.strip(), provider=self.id)
