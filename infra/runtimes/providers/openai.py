"""
OpenAI兼容供应商实现

通过OpenAI协议调用vLLM部署的多模态模型。
"""

import openai
from openai.types.chat import ChatCompletionMessageParam

from ..entities import LLMRequest, LLMReply, Provider
from .base import BaseProvider, MalformedReplyError
from utils import get_component_logger

logger = get_component_logger(__name__, "OpenAICompatibleProvider")


class OpenAICompatibleProvider(BaseProvider):
    """OpenAI兼容（vLLM）供应商实现类"""

    def __init__(self, provider: Provider):
        """
        初始化供应商

        参数:
            provider: vLLM配置
        """
        super().__init__(provider)
        self.client = openai.AsyncOpenAI(
            api_key=provider.api_key or "EMPTY",
            base_url=provider.base_url,
            timeout=provider.timeout,
            max_retries=0
        )

    def _format_message_content(self, request: LLMRequest) -> str | list:
        """
        将请求转换为OpenAI content格式

        返回:
            str 或 list[dict]: 纯文本或图文混合内容
        """
        if not request.image_base64:
            return request.prompt

        return [
            {"type": "text", "text": request.prompt},
            {
                "type": "image_url",
                "image_url": {"url": f"data:image/jpeg;base64,{request.image_base64}"}
            },
        ]

    async def completions(self, request: LLMRequest) -> LLMReply:
        """
        发送聊天请求到vLLM

        参数:
            request: LLM请求

        返回:
            LLMReply: 取 choices[0].message.content 归一化后的回复
        """
        messages: list[ChatCompletionMessageParam] = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.append({"role": "user", "content": self._format_message_content(request)})

        response = await self.client.chat.completions.create(
            model=self.provider.model,
            messages=messages,
            temperature=request.temperature,
            max_tokens=request.max_tokens
        )

        if not response.choices:
            raise MalformedReplyError(f"供应商 {self.id} 返回空的choices")

        logger.debug(f"vLLM回复完成: model={self.provider.model}")
        return self._normalize(response.choices[0].message.content)
