"""
数据库模块

该模块提供PostgreSQL数据库连接和基础设施功能。
数据库模型位于 models/ 目录中。
"""

from .connection import (
    get_engine,
    database_session,
    create_tables,
    test_db_connection,
    close_db_connections
)

__all__ = [
    "get_engine",
    "database_session",
    "create_tables",
    "test_db_connection",
    "close_db_connections"
]
