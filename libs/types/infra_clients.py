"""
基础设施客户端类型定义。

提供统一的 dataclass 用于传递集中初始化的外部服务客户端。
"""

from dataclasses import dataclass

from pymilvus import MilvusClient
from sqlalchemy.ext.asyncio import AsyncEngine


@dataclass
class InfraClients:
    """集中封装数据库和向量索引客户端，供运行时复用。"""

    db_engine: AsyncEngine
    milvus: MilvusClient | None
