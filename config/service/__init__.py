"""
LLM 服务配置模块

包含图片描述和查询扩展所使用的 LLM 端点配置。
"""

from pydantic import Field, PositiveFloat
from pydantic_settings import BaseSettings


class LLMServiceConfig(BaseSettings):
    """
    LLM 端点配置类

    支持 OpenAI 兼容端点（vLLM）和 Ollama 两种供应商，
    按 LLM_PROVIDER_ORDER 的顺序进行故障切换。
    """

    # vLLM（OpenAI 兼容协议）
    VLLM_BASE_URL: str = Field(
        description="vLLM OpenAI 兼容接口地址",
        default="http://localhost:8000/v1",
    )

    VLLM_API_KEY: str = Field(
        description="vLLM 接口密钥，本地部署可使用任意非空值",
        default="EMPTY",
    )

    VLLM_MODEL: str = Field(
        description="vLLM 部署的多模态模型名称",
        default="OpenGVLab/InternVL2_5-1B-MPO",
    )

    # Ollama
    OLLAMA_BASE_URL: str = Field(
        description="Ollama 服务地址",
        default="http://localhost:11434",
    )

    OLLAMA_MODEL: str = Field(
        description="Ollama 多模态模型名称",
        default="gemma3:12b",
    )

    # 通用设置
    LLM_PROVIDER_ORDER: list[str] = Field(
        description="供应商优先顺序，首个为初始首选供应商",
        default=["vllm", "ollama"],
    )

    LLM_TEMPERATURE: float = Field(
        description="生成温度",
        default=0.7,
    )

    LLM_MAX_TOKENS: int = Field(
        description="单次回复的最大token数",
        default=128,
    )

    LLM_TIMEOUT: PositiveFloat = Field(
        description="单次 LLM 请求超时时间（秒）",
        default=30.0,
    )
