"""
基础设施客户端与检索服务工厂

提供基于类的接口来构建和缓存基础设施客户端（数据库、Milvus），
并在其上组装检索编排、导入等服务。
"""

from dataclasses import dataclass
from typing import Optional

from pymilvus import MilvusClient

from core.rag.caption_service import CaptionGenerator
from core.rag.embedding_service import embedding_provider
from core.rag.indexer import ProductIndexer
from core.rag.keyword_store import KeywordStore
from core.rag.query_expander import QueryExpander
from core.rag.retrieval_service import RetrievalService
from core.rag.vector_index import VectorIndexClient
from infra.db import close_db_connections, create_tables, get_engine, test_db_connection
from infra.ops import close_milvus_connection, get_milvus_connection, verify_milvus_connection
from infra.runtimes import LLMClient, LLMConfig
from libs.exceptions import DependencyUnavailableException
from utils import get_component_logger
from .types import InfraClients

logger = get_component_logger(__name__)


@dataclass
class SearchServices:
    """组装完成的检索相关服务"""
    llm_client: LLMClient
    vector_index: VectorIndexClient
    keyword_store: KeywordStore
    retrieval_service: RetrievalService
    indexer: ProductIndexer


class InfraFactory:
    """
    延迟初始化基础设施客户端的工厂。

    实例会缓存已创建的客户端和服务，避免重复构建，同时保持生命周期管理的显式性。
    """

    def __init__(self):
        self._clients: Optional[InfraClients] = None
        self._services: Optional[SearchServices] = None

    async def create_clients(self) -> InfraClients:
        """
        如未创建则初始化基础设施客户端。

        Returns:
            InfraClients: 已缓存或新创建的客户端集合。
        """
        if self._clients is not None:
            return self._clients

        logger.info("开始初始化基础设施客户端")

        db_engine = await get_engine()
        logger.info("PostgreSQL 数据库引擎准备完成")

        # Milvus 不可用时检索降级为关键词检索，之后按需重连
        milvus: Optional[MilvusClient] = None
        try:
            milvus = await get_milvus_connection()
            logger.info("Milvus 连接准备完成")
        except Exception as exc:
            logger.warning("Milvus 连接初始化失败: %s", exc, exc_info=True)

        self._clients = InfraClients(db_engine=db_engine, milvus=milvus)
        logger.info("基础设施客户端初始化完成")
        return self._clients

    def get_cached_clients(self) -> Optional[InfraClients]:
        """
        返回已缓存的客户端，不触发初始化。

        Returns:
            Optional[InfraClients]: 之前创建的客户端集合。
        """
        return self._clients

    async def test_clients(self):
        """测试所有已初始化的基础设施客户端,各服务连接状态记录在日志中。"""
        if self._clients is None:
            logger.warning("客户端未初始化，无法测试")
            return

        logger.info("开始测试基础设施客户端连接")

        if await test_db_connection():
            logger.info("✓ 数据库连接成功")
        else:
            logger.warning("✗ 数据库连接失败")

        if self._clients.milvus:
            await verify_milvus_connection(self._clients.milvus)
        else:
            logger.info("○ Milvus未连接")

        logger.info("基础设施客户端连接测试完成")

    async def create_services(self) -> SearchServices:
        """
        组装检索服务，加载embedding模型并确保数据表和向量集合就绪。

        模型加载或集合初始化失败只记录日志，检索按降级规则运行。
        """
        if self._services is not None:
            return self._services

        clients = await self.create_clients()

        try:
            await create_tables()
        except Exception as exc:
            logger.warning("数据表初始化失败: %s", exc)

        llm_client = LLMClient(LLMConfig())
        caption_generator = CaptionGenerator(llm_client)
        keyword_store = KeywordStore()
        vector_index = VectorIndexClient(client=clients.milvus, connector=get_milvus_connection)

        try:
            await embedding_provider.load()
        except Exception as exc:
            logger.error("embedding模型加载失败，语义检索不可用: %s", exc, exc_info=True)

        try:
            stats = await vector_index.ensure_collection()
            logger.info(f"向量集合就绪: {stats}")
        except Exception as exc:
            logger.warning("向量集合初始化失败: %s", exc)

        self._services = SearchServices(
            llm_client=llm_client,
            vector_index=vector_index,
            keyword_store=keyword_store,
            retrieval_service=RetrievalService(
                keyword_store=keyword_store,
                vector_index=vector_index,
                embedding_provider=embedding_provider,
                caption_generator=caption_generator
            ),
            indexer=ProductIndexer(
                vector_index=vector_index,
                embedding_provider=embedding_provider,
                caption_generator=caption_generator,
                query_expander=QueryExpander(llm_client),
                keyword_store=keyword_store
            )
        )
        return self._services

    def get_cached_services(self) -> Optional[SearchServices]:
        """返回已组装的服务，不触发初始化"""
        return self._services

    def get_services(self) -> SearchServices:
        """返回已组装的服务，未初始化时视为依赖不可用"""
        if self._services is None:
            raise DependencyUnavailableException("search", "服务尚未初始化")
        return self._services

    async def shutdown_clients(self):
        """关闭所有已初始化的基础设施客户端。"""
        if self._clients is None:
            return

        logger.info("开始关闭基础设施客户端")

        milvus = self._services.vector_index.client if self._services else self._clients.milvus
        if milvus:
            await close_milvus_connection(milvus)

        await close_db_connections()

        self._clients = None
        self._services = None
        logger.info("基础设施客户端关闭完成")


# 全局注册表实例
infra_registry = InfraFactory()
