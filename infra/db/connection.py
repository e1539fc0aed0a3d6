"""
商品目录数据库连接

商品目录（关键词检索与向量命中解析的数据源）使用一个进程级异步引擎，
请求通过 database_session() 获取短生命周期会话。
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine
)

from config import app_config
from utils import get_component_logger

logger = get_component_logger(__name__, "Database")

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _build_engine() -> AsyncEngine:
    return create_async_engine(
        app_config.postgres_url,
        pool_size=app_config.SQLALCHEMY_POOL_SIZE,
        max_overflow=app_config.SQLALCHEMY_MAX_OVERFLOW,
        pool_pre_ping=app_config.SQLALCHEMY_POOL_PRE_PING,
        pool_recycle=app_config.SQLALCHEMY_POOL_RECYCLE,
        connect_args={
            "command_timeout": app_config.SQLALCHEMY_COMMAND_TIMEOUT,
            "server_settings": {"application_name": app_config.APP_NAME},
        },
        echo=app_config.DEBUG,
    )


async def get_engine() -> AsyncEngine:
    """
    获取商品目录数据库引擎，首次调用时创建

    返回:
        AsyncEngine: 进程级共享引擎
    """
    global _engine

    if _engine is None:
        logger.info(f"初始化商品目录数据库引擎: {app_config.DB_HOST}:{app_config.DB_PORT}/{app_config.DB_NAME}")
        _engine = _build_engine()

    return _engine


async def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory

    if _session_factory is None:
        _session_factory = async_sessionmaker(await get_engine(), expire_on_commit=False)

    return _session_factory


@asynccontextmanager
async def database_session() -> AsyncGenerator[AsyncSession, None]:
    """
    会话作用域：正常退出时提交，异常时回滚并向上抛出

    用法:
        async with database_session() as session:
            rows = await ProductRepository.search_by_keyword("shirt", 10, session)
    """
    session_factory = await get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"商品目录操作失败，已回滚: {type(e).__name__}: {e}")
            raise


async def create_tables():
    """创建缺失的商品目录数据表，已存在的表保持不变"""
    from models import Base

    engine = await get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("商品目录数据表检查完成")


async def close_db_connections():
    """释放连接池"""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("商品目录数据库连接已关闭")


async def test_db_connection() -> bool:
    """
    探测数据库连通性，并记录商品表是否已存在

    返回:
        bool: 数据库可连接时为True
    """
    try:
        engine = await get_engine()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
            has_products = await conn.run_sync(lambda sync_conn: inspect(sync_conn).has_table("products"))
    except Exception as e:
        logger.error(f"数据库连接测试失败: {e}")
        return False

    if not has_products:
        logger.warning("商品表 products 尚不存在，将在服务初始化时创建")
    return True
