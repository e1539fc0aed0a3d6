"""
Milvus客户端工厂

提供Milvus向量数据库连接管理。
"""

import asyncio

from pymilvus import MilvusClient, MilvusException

from config import app_config
from utils import get_component_logger

logger = get_component_logger(__name__)


async def get_milvus_connection() -> MilvusClient:
    """
    创建Milvus客户端

    客户端为进程级长连接，由基础设施工厂缓存并在并发请求间共享。

    Returns:
        MilvusClient: Milvus客户端实例
    """
    try:
        logger.info(f"初始化Milvus客户端: {app_config.MILVUS_HOST}")
        client = await asyncio.to_thread(
            MilvusClient,
            uri=app_config.milvus_uri,
            timeout=app_config.MILVUS_TIMEOUT  # 快速失败
        )
    except MilvusException as e:
        logger.error(f"Milvus客户端创建失败: {e}")
        raise ConnectionError(f"Failed to connect to Milvus: {e}")

    return client


async def close_milvus_connection(client: MilvusClient):
    """
    关闭Milvus连接
    """
    try:
        client.close()
        logger.info("Milvus连接关闭成功")
    except Exception as e:
        logger.error(f"Milvus连接关闭失败: {e}")


async def verify_milvus_connection(client: MilvusClient) -> bool:
    """
    验证Milvus连接，并记录商品向量集合是否已创建

    Returns:
        bool: 服务可达返回True，否则返回False
    """
    collection = app_config.MILVUS_COLLECTION
    try:
        version = await asyncio.to_thread(client.get_server_version)
        exists = await asyncio.to_thread(client.has_collection, collection)
    except Exception as e:
        logger.error(f"✗ Milvus不可达，语义检索将降级: {e}")
        return False

    logger.info(f"✓ Milvus {version} 可用，集合 {collection} {'已存在' if exists else '待创建'}")
    return True
