"""
商品数据访问存储库

提供纯粹的数据访问操作:
- 关键词子串检索（名称/类目/描述，不区分大小写）
- 按 source_id 批量解析商品
- 最新商品列表
- 商品写入与图片描述回填
- 依赖注入，支持外部会话管理
"""

from typing import Optional, Sequence

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models import ProductOrm
from utils import get_component_logger, get_current_datetime

logger = get_component_logger(__name__, "ProductRepository")


def escape_like(value: str) -> str:
    """转义LIKE通配符，保证关键词按字面子串匹配"""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ProductRepository:

    @staticmethod
    def keyword_statement(keyword: str, limit: int):
        """构建关键词子串检索语句，按目录顺序（主键）返回"""
        pattern = f"%{escape_like(keyword.strip())}%"
        return (
            select(ProductOrm)
            .where(or_(
                ProductOrm.name.ilike(pattern, escape="\\"),
                ProductOrm.category.ilike(pattern, escape="\\"),
                ProductOrm.description.ilike(pattern, escape="\\"),
            ))
            .order_by(ProductOrm.id)
            .limit(limit)
        )

    @staticmethod
    async def search_by_keyword(keyword: str, limit: int, session: AsyncSession) -> list[ProductOrm]:
        """关键词子串检索"""
        try:
            result = await session.execute(ProductRepository.keyword_statement(keyword, limit))
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"关键词检索失败: {keyword}, 错误: {e}")
            raise

    @staticmethod
    async def get_by_source_ids(source_ids: Sequence[str], session: AsyncSession) -> list[ProductOrm]:
        """按 source_id 批量获取商品，不存在的标识直接忽略"""
        if not source_ids:
            return []
        try:
            stmt = select(ProductOrm).where(ProductOrm.source_id.in_(list(source_ids)))
            result = await session.execute(stmt)
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"批量获取商品失败: {len(source_ids)} 个标识, 错误: {e}")
            raise

    @staticmethod
    async def get_by_source_id(source_id: str, session: AsyncSession) -> Optional[ProductOrm]:
        """根据 source_id 获取商品"""
        try:
            stmt = select(ProductOrm).where(ProductOrm.source_id == source_id)
            result = await session.execute(stmt)
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"获取商品失败: {source_id}, 错误: {e}")
            raise

    @staticmethod
    async def list_recent(limit: int, session: AsyncSession) -> list[ProductOrm]:
        """最新创建的商品列表"""
        try:
            stmt = (
                select(ProductOrm)
                .order_by(ProductOrm.created_at.desc(), ProductOrm.id.desc())
                .limit(limit)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"获取最新商品失败: {e}")
            raise

    @staticmethod
    async def insert_product(product: ProductOrm, session: AsyncSession) -> str:
        """写入商品"""
        try:
            session.add(product)
            await session.flush()
            logger.debug(f"创建商品: {product.source_id}")
            return product.source_id
        except Exception as e:
            logger.error(f"创建商品失败: {product.source_id}, 错误: {e}")
            raise

    @staticmethod
    async def update_caption(source_id: str, caption: str, session: AsyncSession) -> bool:
        """回填商品图片描述"""
        try:
            stmt = (
                update(ProductOrm)
                .where(ProductOrm.source_id == source_id)
                .values(caption=caption, updated_at=get_current_datetime())
            )
            result = await session.execute(stmt)
            return result.rowcount > 0
        except Exception as e:
            logger.error(f"更新商品描述失败: {source_id}, 错误: {e}")
            raise
