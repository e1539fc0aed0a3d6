"""
检索编排服务

把文本或图片查询转换为排序、去重后的商品结果列表。

核心功能:
- 文本检索: 关键词分支与语义分支并发执行，语义命中优先，关键词命中补充
- 以图搜图: 视觉管线（图片向量→视觉检索）与描述管线（图片描述→文本检索）并发且相互独立
- 降级: 向量索引不可达或无语义命中时只返回关键词结果，不报错
- 兜底: 以图搜图无结果时使用通用查询，兜底查询有独立的超时预算
- 超时: 调用方超时会取消所有未完成分支，按失败分支处理
- 只有所有分支都失败时才抛出终止错误
"""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Optional

from config.rag_config import rag_config, RAGConfig
from core.multimodal import temporary_image_file, verify_image_bytes
from core.rag.caption_service import CaptionGenerator
from core.rag.embedding_service import EmbeddingProvider
from core.rag.keyword_store import KeywordStore
from core.rag.ranking import exact_candidates, hits_to_candidates, merge_results
from core.rag.vector_index import VectorIndexClient
from libs.exceptions import (
    DependencyUnavailableException,
    InvalidInputException,
    SearchUnavailableException
)
from libs.types import MatchType, VectorField
from models import RankedResult, SearchHit, SearchOutcome
from utils import get_component_logger, get_current_datetime, get_processing_time_ms

logger = get_component_logger(__name__, "RetrievalService")


@dataclass
class BranchOutcome:
    """单个检索分支的执行结果"""
    name: str
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class PathOutcome:
    """一条检索路径（多个分支合并前）的候选结果"""
    candidates: list[RankedResult] = field(default_factory=list)
    degraded: bool = False


class RetrievalService:
    """
    检索编排器

    依赖的embedding模型、向量索引和关键词存储均为进程级共享实例；
    每次请求的中间结果只存在于该请求的调用栈中。
    """

    def __init__(
        self,
        keyword_store: KeywordStore,
        vector_index: VectorIndexClient,
        embedding_provider: EmbeddingProvider,
        caption_generator: CaptionGenerator,
        config: Optional[RAGConfig] = None
    ):
        self.keyword_store = keyword_store
        self.vector_index = vector_index
        self.embedding_provider = embedding_provider
        self.caption_generator = caption_generator
        self.config = config or rag_config

    # ==================== 公共接口 ====================

    async def search_by_text(
        self,
        query: Optional[str],
        limit: Optional[int] = None,
        timeout: Optional[float] = None
    ) -> SearchOutcome:
        """
        文本检索

        参数:
            query: 查询文本，为空时返回最新商品列表
            limit: 最大返回数量
            timeout: 请求超时（秒），为空时使用配置默认值

        返回:
            SearchOutcome: 排序后的结果

        异常:
            InvalidInputException: limit 不合法
            SearchUnavailableException: 所有分支均失败
        """
        start_time = get_current_datetime()
        limit = self._normalize_limit(limit)

        if query is None or not query.strip():
            results = await self._recent_listing(limit)
            return SearchOutcome(
                results=results,
                fallback_used=True,
                elapsed_ms=get_processing_time_ms(start_time)
            )

        deadline = self._deadline(timeout)
        outcome = await self._text_path(query.strip(), limit, deadline)
        results = merge_results(outcome.candidates, limit)

        elapsed = get_processing_time_ms(start_time)
        logger.info(
            f"文本检索完成: query={query[:50]!r}, 结果={len(results)}, "
            f"降级={outcome.degraded}, 耗时={elapsed:.1f}ms"
        )
        return SearchOutcome(results=results, degraded=outcome.degraded, elapsed_ms=elapsed)

    async def search_by_image(
        self,
        image_bytes: bytes,
        limit: Optional[int] = None,
        timeout: Optional[float] = None
    ) -> SearchOutcome:
        """
        以图搜图

        参数:
            image_bytes: 图片原始字节
            limit: 最大返回数量
            timeout: 请求超时（秒），为空时使用配置默认值

        返回:
            SearchOutcome: 排序后的结果，兜底后仍无结果时为空列表

        异常:
            InvalidInputException: 图片为空、超过大小上限或无法识别
            SearchUnavailableException: 所有分支及兜底查询均失败
        """
        start_time = get_current_datetime()
        limit = self._normalize_limit(limit)

        if not image_bytes:
            raise InvalidInputException("图片数据为空")
        if len(image_bytes) > self.config.IMAGE_MAX_BYTES:
            raise InvalidInputException(
                f"图片大小 {len(image_bytes)} 字节超过上限 {self.config.IMAGE_MAX_BYTES} 字节"
            )
        await verify_image_bytes(image_bytes)

        deadline = self._deadline(timeout)
        outcome, all_failed = await self._image_path(image_bytes, limit, deadline)
        results = merge_results(outcome.candidates, limit)

        fallback_used = False
        if not results:
            fallback_used = True
            logger.info(f"以图搜图无结果，使用兜底查询: {self.config.FALLBACK_QUERY}")
            try:
                fallback = await self._text_path(
                    self.config.FALLBACK_QUERY,
                    limit,
                    self._deadline(self.config.FALLBACK_TIMEOUT)
                )
            except SearchUnavailableException:
                if all_failed:
                    raise
                fallback = PathOutcome(degraded=True)
            results = merge_results(fallback.candidates, limit)
            outcome.degraded = outcome.degraded or fallback.degraded

        elapsed = get_processing_time_ms(start_time)
        logger.info(
            f"以图搜图完成: 结果={len(results)}, 降级={outcome.degraded}, "
            f"兜底={fallback_used}, 耗时={elapsed:.1f}ms"
        )
        return SearchOutcome(
            results=results,
            degraded=outcome.degraded,
            fallback_used=fallback_used,
            elapsed_ms=elapsed
        )

    # ==================== 文本路径 ====================

    async def _text_path(self, query: str, limit: int, deadline: Optional[float]) -> PathOutcome:
        """关键词分支与语义分支并发执行，两者都失败时抛出终止错误"""
        branches = await self._run_branches({
            "exact": self._exact_branch(query, limit),
            "semantic": self._semantic_branch(query, limit),
        }, deadline)

        if not any(branch.ok for branch in branches.values()):
            raise SearchUnavailableException("关键词检索和语义检索均失败")

        candidates: list[RankedResult] = []
        for branch in branches.values():
            if branch.ok:
                candidates.extend(branch.value)

        return PathOutcome(
            candidates=candidates,
            degraded=not all(branch.ok for branch in branches.values())
        )

    async def _exact_branch(self, query: str, limit: int) -> list[RankedResult]:
        products = await self.keyword_store.search(query, limit)
        return exact_candidates(products)

    async def _semantic_branch(self, query: str, limit: int) -> list[RankedResult]:
        if not await self.vector_index.ping():
            raise DependencyUnavailableException("milvus", "连通性探测失败")

        vector = await self.embedding_provider.embed_text(query)
        hits = await self.vector_index.search(
            vector,
            VectorField.TEXT,
            limit * self.config.SEMANTIC_OVERSAMPLE,
            self.config.SEARCH_NPROBE
        )
        if not hits:
            logger.debug(f"语义检索无命中: {query[:50]!r}")
            return []

        return await self._resolve(hits, MatchType.SEMANTIC)

    # ==================== 图片路径 ====================

    async def _image_path(
        self,
        image_bytes: bytes,
        limit: int,
        deadline: Optional[float]
    ) -> tuple[PathOutcome, bool]:
        """
        返回合并前的候选以及是否所有分支都失败

        视觉管线（图片向量→视觉检索）与描述管线（图片描述→文本检索）相互独立，
        其中一条超时只取消它自己。
        临时文件在离开作用域时删除，路径不会出现在结果或异常中。
        """
        async with temporary_image_file(image_bytes) as image_path:
            results = await self._run_branches({
                "visual": self._visual_pipeline(image_path, limit),
                "caption": self._caption_pipeline(image_path, limit, deadline),
            }, deadline)

        outcome = PathOutcome()
        for name, branch in results.items():
            if not branch.ok:
                outcome.degraded = True
                continue
            if name == "visual":
                outcome.candidates.extend(branch.value)
            else:
                outcome.candidates.extend(branch.value.candidates)
                outcome.degraded = outcome.degraded or branch.value.degraded

        all_failed = not any(branch.ok for branch in results.values())
        return outcome, all_failed

    async def _visual_pipeline(self, image_path: str, limit: int) -> list[RankedResult]:
        vector = await self.embedding_provider.embed_image(Path(image_path))
        return await self._visual_branch(vector, limit)

    async def _caption_pipeline(self, image_path: str, limit: int, deadline: Optional[float]) -> PathOutcome:
        caption = await self.caption_generator.caption(image_path)
        return await self._text_path(caption, limit, deadline)

    async def _visual_branch(self, vector: list[float], limit: int) -> list[RankedResult]:
        hits = await self.vector_index.search(
            vector,
            VectorField.IMAGE,
            limit * self.config.SEMANTIC_OVERSAMPLE,
            self.config.SEARCH_NPROBE
        )
        if not hits:
            return []
        return await self._resolve(hits, MatchType.VISUAL, weight=self.config.IMAGE_SCORE_WEIGHT)

    # ==================== 辅助方法 ====================

    async def _resolve(
        self,
        hits: list[SearchHit],
        match_type: MatchType,
        weight: float = 1.0
    ) -> list[RankedResult]:
        """把向量命中解析为商品记录，目录中已不存在的商品视为软缺失"""
        product_ids = list(dict.fromkeys(hit.product_id for hit in hits))
        products = await self.keyword_store.resolve(product_ids)

        missing = len(product_ids) - len(products)
        if missing:
            logger.debug(f"{missing} 个向量命中在商品目录中不存在，已忽略")

        return hits_to_candidates(hits, match_type, products, weight=weight)

    async def _recent_listing(self, limit: int) -> list[RankedResult]:
        try:
            products = await self.keyword_store.list_recent(limit)
        except Exception as e:
            logger.error(f"获取最新商品失败: {e}")
            raise SearchUnavailableException("商品目录不可用")
        return merge_results(exact_candidates(products), limit)

    async def _run_branches(
        self,
        branches: dict[str, Awaitable],
        deadline: Optional[float]
    ) -> dict[str, BranchOutcome]:
        """
        并发执行多个分支

        到达截止时间仍未完成的分支会被取消并记为失败；
        单个分支失败只记录日志，不影响其他分支。
        """
        tasks = {name: asyncio.ensure_future(coro) for name, coro in branches.items()}
        try:
            timeout = None
            if deadline is not None:
                timeout = max(0.0, deadline - asyncio.get_running_loop().time())

            _, pending = await asyncio.wait(tasks.values(), timeout=timeout)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
        finally:
            leftover = [task for task in tasks.values() if not task.done()]
            for task in leftover:
                task.cancel()
            if leftover:
                await asyncio.gather(*leftover, return_exceptions=True)

        outcomes = {}
        for name, task in tasks.items():
            if task.cancelled():
                error: Optional[BaseException] = asyncio.TimeoutError(f"{name} 分支超时")
            else:
                error = task.exception()

            if error is not None:
                logger.warning(f"检索分支 {name} 失败: {type(error).__name__}: {error}")
                outcomes[name] = BranchOutcome(name=name, error=error)
            else:
                outcomes[name] = BranchOutcome(name=name, value=task.result())

        return outcomes

    def _deadline(self, timeout: Optional[float]) -> Optional[float]:
        timeout = timeout if timeout is not None else self.config.SEARCH_TIMEOUT
        if timeout is None or timeout <= 0:
            return None
        return asyncio.get_running_loop().time() + timeout

    def _normalize_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.config.DEFAULT_LIMIT
        if limit < 1:
            raise InvalidInputException(f"limit 必须为正整数，当前为 {limit}")
        return min(limit, self.config.MAX_LIMIT)
