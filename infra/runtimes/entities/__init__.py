from .llm import LLMRequest, LLMReply
from .providers import Provider, ProviderType

__all__ = [
    "LLMRequest",
    "LLMReply",
    "Provider",
    "ProviderType",
]
