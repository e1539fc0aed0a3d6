"""
关键词检索存储

把商品存储库绑定到数据库会话，为检索编排器提供与会话无关的接口。
"""

from contextlib import AbstractAsyncContextManager
from typing import Callable, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from infra.db import database_session
from libs.exceptions import DependencyUnavailableException
from models import Product
from repositories import ProductRepository
from utils import get_component_logger

logger = get_component_logger(__name__, "KeywordStore")

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class KeywordStore:
    """商品目录关键词检索"""

    def __init__(self, session_factory: Optional[SessionFactory] = None):
        self.session_factory = session_factory or database_session

    async def search(self, keyword: str, limit: int) -> list[Product]:
        """
        名称/类目/描述不区分大小写的子串匹配

        参数:
            keyword: 关键词
            limit: 最大返回数量

        返回:
            list[Product]: 目录顺序的商品
        """
        try:
            async with self.session_factory() as session:
                rows = await ProductRepository.search_by_keyword(keyword, limit, session)
        except SQLAlchemyError as e:
            raise DependencyUnavailableException("postgres", type(e).__name__) from e
        return [Product.from_orm_model(row) for row in rows]

    async def resolve(self, source_ids: Sequence[str]) -> dict[str, Product]:
        """按 source_id 批量解析商品，无法解析的标识不出现在结果中"""
        if not source_ids:
            return {}
        try:
            async with self.session_factory() as session:
                rows = await ProductRepository.get_by_source_ids(source_ids, session)
        except SQLAlchemyError as e:
            raise DependencyUnavailableException("postgres", type(e).__name__) from e
        return {row.source_id: Product.from_orm_model(row) for row in rows}

    async def list_recent(self, limit: int) -> list[Product]:
        """最新商品列表"""
        try:
            async with self.session_factory() as session:
                rows = await ProductRepository.list_recent(limit, session)
        except SQLAlchemyError as e:
            raise DependencyUnavailableException("postgres", type(e).__name__) from e
        return [Product.from_orm_model(row) for row in rows]

    async def get(self, source_id: str) -> Optional[Product]:
        async with self.session_factory() as session:
            row = await ProductRepository.get_by_source_id(source_id, session)
        return Product.from_orm_model(row) if row else None

    async def add(self, product: Product) -> str:
        async with self.session_factory() as session:
            return await ProductRepository.insert_product(product.to_orm(), session)

    async def update_caption(self, source_id: str, caption: str) -> bool:
        async with self.session_factory() as session:
            updated = await ProductRepository.update_caption(source_id, caption, session)
        if not updated:
            logger.warning(f"回填描述时商品不存在: {source_id}")
        return updated
