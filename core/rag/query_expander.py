"""
查询扩展服务

将简短的查询或商品名称改写为更丰富的检索描述，用于提升embedding质量。
扩展失败时原样返回输入；超过长度阈值的输入属于调用错误。
"""

from typing import Optional

from config import app_config
from config.rag_config import rag_config
from infra.runtimes import LLMClient, LLMRequest
from libs.exceptions import ExpansionInputTooLongException
from utils import get_component_logger, with_fallback

logger = get_component_logger(__name__, "QueryExpander")

SYSTEM_PROMPT = (
    "You are a product description optimizer for an e-commerce search engine. "
    "You rewrite short product titles and search phrases into one clear, "
    "search-optimized sentence. Never add information that is not implied by the input."
)

QUERY_TEMPLATE = (
    "Rewrite the search query '{text}' into a single descriptive sentence that "
    "captures what kind of product the shopper is looking for. "
    "Reply with the sentence only."
)

PRODUCT_TEMPLATE = (
    "Take the product title '{text}' and expand it into a meaningful, single-sentence "
    "description that highlights its type, key features, and intended use. "
    "The fields are separated by '{separator}'. Reply with the sentence only."
)


def _keep_original(_: Exception, _self: "QueryExpander", text: str) -> str:
    return text


class QueryExpander:
    """查询扩展器"""

    def __init__(
        self,
        llm_client: LLMClient,
        max_chars: Optional[int] = None,
        separator: Optional[str] = None
    ):
        self.llm_client = llm_client
        self.max_chars = max_chars or rag_config.EXPANSION_MAX_CHARS
        self.separator = separator or rag_config.FIELD_SEPARATOR

    def should_expand(self, text: str) -> bool:
        """文本非空且不超过阈值时才值得扩展"""
        return bool(text and text.strip()) and len(text) <= self.max_chars

    def build_prompt(self, text: str) -> str:
        """含字段分隔符的视为结构化商品文本，否则视为用户查询"""
        if self.separator in text:
            return PRODUCT_TEMPLATE.format(text=text, separator=self.separator)
        return QUERY_TEMPLATE.format(text=text)

    @with_fallback(_keep_original, passthrough=(ExpansionInputTooLongException,))
    async def expand(self, text: str) -> str:
        """
        扩展文本

        参数:
            text: 简短查询或商品文本

        返回:
            str: 扩展后的文本；任何失败时返回原文本

        异常:
            ExpansionInputTooLongException: 文本长度超过阈值
        """
        if len(text) > self.max_chars:
            raise ExpansionInputTooLongException(len(text), self.max_chars)
        if not text.strip():
            return text

        reply = await self.llm_client.completions(LLMRequest(
            prompt=self.build_prompt(text.strip()),
            system_prompt=SYSTEM_PROMPT,
            temperature=app_config.LLM_TEMPERATURE,
            max_tokens=app_config.LLM_MAX_TOKENS
        ))

        expanded = reply.text.strip().strip('"').strip()
        if not expanded:
            return text

        logger.debug(f"查询扩展完成: {text} -> {expanded[:80]}")
        return expanded
