"""
Ollama供应商实现

通过 /api/chat 接口调用本地Ollama多模态模型。
"""

from ..entities import LLMRequest, LLMReply, Provider
from .base import BaseProvider, MalformedReplyError
from utils import ExternalClient, get_component_logger

logger = get_component_logger(__name__, "OllamaProvider")


class OllamaProvider(BaseProvider):
    """Ollama供应商实现类"""

    def __init__(self, provider: Provider):
        super().__init__(provider)
        self.client = ExternalClient(base_url=provider.base_url)

    def _format_message_content(self, request: LLMRequest) -> dict:
        """Ollama的图片以独立的 images 字段传递原始base64"""
        message = {"role": "user", "content": request.prompt}
        if request.image_base64:
            message["images"] = [request.image_base64]
        return message

    async def completions(self, request: LLMRequest) -> LLMReply:
        """
        发送聊天请求到Ollama

        参数:
            request: LLM请求

        返回:
            LLMReply: 取 message.content 归一化后的回复
        """
        messages = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.append(self._format_message_content(request))

        options = {"temperature": request.temperature}
        if request.max_tokens:
            options["num_predict"] = request.max_tokens

        data = await self.client.make_request(
            "POST",
            "/api/chat",
            data={
                "model": self.provider.model,
                "messages": messages,
                "stream": False,
                "options": options,
            },
            timeout=self.provider.timeout,
            max_retries=0
        )

        if not isinstance(data, dict):
            raise MalformedReplyError(f"供应商 {self.id} 返回非JSON回复")

        logger.debug(f"Ollama回复完成: model={self.provider.model}")
        return self._normalize((data.get("message") or {}).get("content"))
