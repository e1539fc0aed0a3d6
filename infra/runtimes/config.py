"""
LLM配置加载器

从应用配置构建LLM供应商列表。
"""

from infra.runtimes.entities import Provider, ProviderType
from config import app_config
from utils import get_component_logger

logger = get_component_logger(__name__, "LLMConfig")


class LLMConfig:
    """LLM配置管理器"""

    def __init__(self, providers: list[Provider] | None = None):
        """
        初始化配置

        参数:
            providers: 显式提供的供应商列表，为空时从应用配置加载
        """
        self.providers = providers if providers is not None else self.load_providers()

    @staticmethod
    def load_providers() -> list[Provider]:
        """
        按 LLM_PROVIDER_ORDER 的顺序加载供应商列表

        返回:
            list[Provider]: 供应商列表，顺序即故障切换顺序
        """
        available = {
            ProviderType.VLLM: Provider(
                id=ProviderType.VLLM.value,
                type=ProviderType.VLLM,
                base_url=app_config.VLLM_BASE_URL,
                model=app_config.VLLM_MODEL,
                api_key=app_config.VLLM_API_KEY,
                timeout=app_config.LLM_TIMEOUT
            ),
            ProviderType.OLLAMA: Provider(
                id=ProviderType.OLLAMA.value,
                type=ProviderType.OLLAMA,
                base_url=app_config.OLLAMA_BASE_URL,
                model=app_config.OLLAMA_MODEL,
                timeout=app_config.LLM_TIMEOUT
            ),
        }

        providers = []
        for name in app_config.LLM_PROVIDER_ORDER:
            try:
                provider_type = ProviderType(name.lower())
            except ValueError:
                logger.warning(f"跳过未知的供应商配置: {name}")
                continue
            provider = available.pop(provider_type, None)
            if provider:
                providers.append(provider)

        return providers
