"""
Operations Module - 基础设施客户端连接
"""
from .milvus_client import get_milvus_connection, close_milvus_connection, verify_milvus_connection

__all__ = [
    'get_milvus_connection',
    'close_milvus_connection',
    'verify_milvus_connection',
]
