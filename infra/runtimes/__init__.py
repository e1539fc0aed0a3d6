"""
LLM运行时模块

该模块为图片描述和查询扩展提供多LLM供应商支持。

核心组件:
- client.py: 供应商监督器（最近成功供应商 + 故障切换）
- config.py: 供应商配置加载
- providers/: 供应商实现（vLLM、Ollama）
- entities/: 请求与归一化回复
"""

from .client import LLMClient
from .config import LLMConfig
from .entities import LLMRequest, LLMReply, Provider, ProviderType
from .providers import BaseProvider, OpenAICompatibleProvider, OllamaProvider

__all__ = [
    "LLMClient",
    "LLMConfig",
    "LLMRequest",
    "LLMReply",
    "Provider",
    "ProviderType",
    "BaseProvider",
    "OpenAICompatibleProvider",
    "OllamaProvider",
]
