from .base import BaseProvider, MalformedReplyError
from .openai import OpenAICompatibleProvider
from .ollama import OllamaProvider

__all__ = [
    "BaseProvider",
    "MalformedReplyError",
    "OpenAICompatibleProvider",
    "OllamaProvider",
]
