from dataclasses import dataclass
from enum import StrEnum


class ProviderType(StrEnum):
    VLLM = "vllm"
    OLLAMA = "ollama"


@dataclass
class Provider:
    id: str
    type: ProviderType
    base_url: str
    model: str
    api_key: str = ""
    timeout: float = 30.0
    enabled: bool = True
