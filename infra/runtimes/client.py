"""
LLM客户端

统一的LLM客户端，在多个供应商之间做故障切换。
记录最近一次成功的供应商，后续请求优先使用；
该供应商失败时按配置顺序重新探测其他供应商。
"""

from infra.runtimes.config import LLMConfig
from infra.runtimes.entities import LLMRequest, LLMReply, Provider, ProviderType
from infra.runtimes.providers import BaseProvider, OllamaProvider, OpenAICompatibleProvider
from libs.exceptions import DependencyUnavailableException
from utils import get_component_logger

logger = get_component_logger(__name__, "LLMClient")


class LLMClient:
    """统一LLM客户端（供应商监督器）"""

    def __init__(self, config: LLMConfig):
        """
        初始化LLM客户端

        参数:
            config: LLM配置对象
        """
        self.config = config
        self.active_providers: dict[str, BaseProvider] = {}
        self._last_good: str | None = None
        self._dispatch()

    def _dispatch(self):
        """初始化已启用的供应商"""
        for provider in self.config.providers:
            if provider.enabled:
                self.active_providers[provider.id] = self._build_provider(provider)

        if self.active_providers:
            self._last_good = next(iter(self.active_providers))

    @staticmethod
    def _build_provider(provider: Provider) -> BaseProvider:
        if provider.type == ProviderType.VLLM:
            return OpenAICompatibleProvider(provider)
        if provider.type == ProviderType.OLLAMA:
            return OllamaProvider(provider)
        raise ValueError(f"不支持的供应商类型: {provider.type}")

    @property
    def last_good_provider(self) -> str | None:
        """最近一次成功的供应商ID"""
        return self._last_good

    def _candidates(self) -> list[str]:
        """最近成功的供应商优先，其余按配置顺序"""
        ordered = list(self.active_providers)
        if self._last_good in self.active_providers:
            ordered.remove(self._last_good)
            ordered.insert(0, self._last_good)
        return ordered

    async def completions(self, request: LLMRequest) -> LLMReply:
        """
        发送请求，失败时依次切换到其他供应商

        参数:
            request: LLM请求对象

        返回:
            LLMReply: 首个成功供应商的归一化回复

        异常:
            DependencyUnavailableException: 所有供应商均失败
        """
        if not self.active_providers:
            raise DependencyUnavailableException("llm", "没有可用的供应商")

        errors = []
        for provider_id in self._candidates():
            provider = self.active_providers[provider_id]
            try:
                reply = await provider.completions(request)
            except Exception as e:
                logger.warning(f"供应商 {provider_id} 调用失败: {e}")
                errors.append(f"{provider_id}: {e}")
                continue

            if self._last_good != provider_id:
                logger.info(f"LLM供应商切换: {self._last_good} -> {provider_id}")
                self._last_good = provider_id
            return reply

        raise DependencyUnavailableException("llm", "; ".join(errors))
