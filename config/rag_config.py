"""
检索系统配置

该模块定义多模态商品检索的所有可调参数。
包括embedding模型、查询扩展、图片处理、结果合并和降级策略等配置。
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RAGConfig(BaseSettings):
    """检索系统配置"""

    model_config = SettingsConfigDict(
        env_prefix="RAG_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # ==================== Embedding配置 ====================
    EMBEDDING_TEXT_MODEL: str = Field(
        default="clip-ViT-B-32",
        description="文本embedding模型名称（sentence-transformers）"
    )
    EMBEDDING_IMAGE_MODEL: str = Field(
        default="clip-ViT-B-32",
        description="图片embedding模型名称（sentence-transformers）"
    )
    EMBEDDING_DIMENSION: int = Field(
        default=512,
        description="Embedding向量维度，文本与图片向量必须一致"
    )
    EMBEDDING_DEVICE: str | None = Field(
        default=None,
        description="推理设备（cpu, cuda），为空时自动选择"
    )

    # ==================== 检索配置 ====================
    DEFAULT_LIMIT: int = Field(
        default=10,
        description="默认返回的检索结果数量"
    )
    MAX_LIMIT: int = Field(
        default=100,
        description="单次请求允许的最大结果数量"
    )
    SEMANTIC_OVERSAMPLE: int = Field(
        default=2,
        description="语义检索的过采样倍数，用于弥补去重损失"
    )
    SEARCH_NPROBE: int = Field(
        default=16,
        description="查询时扫描的聚类数"
    )
    SEARCH_TIMEOUT: float | None = Field(
        default=10.0,
        description="单次检索请求的默认超时时间（秒），为空表示不限制"
    )

    # ==================== 查询扩展配置 ====================
    EXPANSION_MAX_CHARS: int = Field(
        default=100,
        description="允许查询扩展的最大文本长度，超过该长度视为调用错误"
    )
    FIELD_SEPARATOR: str = Field(
        default="|",
        description="商品结构化文本的字段分隔符"
    )

    # ==================== 图片配置 ====================
    IMAGE_MAX_BYTES: int = Field(
        default=2_000_000,
        description="以图搜图上传图片的大小上限（字节）"
    )
    CAPTION_IMAGE_SIZE: int = Field(
        default=384,
        description="发送给LLM前图片缩放的正方形边长（像素）"
    )
    CAPTION_JPEG_QUALITY: int = Field(
        default=85,
        description="缩放后图片的JPEG质量"
    )
    IMAGE_STORAGE_PATH: str = Field(
        default="./uploads",
        description="商品图片本地缓存目录"
    )
    IMAGE_DOWNLOAD_TIMEOUT: float = Field(
        default=30.0,
        description="远程图片下载超时时间（秒）"
    )

    # ==================== 结果合并配置 ====================
    IMAGE_SCORE_WEIGHT: float = Field(
        default=0.9,
        description="图片向量命中分数的权重系数"
    )
    FALLBACK_QUERY: str = Field(
        default="product",
        description="以图搜图无结果时使用的通用兜底查询"
    )
    FALLBACK_TIMEOUT: float = Field(
        default=2.0,
        gt=0,
        description="兜底查询的超时时间（秒），与原请求的截止时间无关"
    )


# 全局检索配置实例
rag_config = RAGConfig()
