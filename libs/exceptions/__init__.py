"""
异常模块

提供检索服务中所有自定义异常的统一导入接口。

异常按照业务域组织：
- base: 基础异常类
- search: 检索异常（输入校验、模型、图片描述、向量索引、依赖服务）

错误代码范围：
- 3000000-3099999: 检索服务

使用示例：
    from libs.exceptions import InvalidInputException, SearchUnavailableException
"""

# 基础异常
from .base import BaseHTTPException

# 检索异常
from .search import (
    SearchException,
    InvalidInputException,
    ExpansionInputTooLongException,
    ModelNotReadyException,
    CaptionUnavailableException,
    DependencyUnavailableException,
    VectorIndexNotReadyException,
    SearchUnavailableException,
)

__all__ = [
    "BaseHTTPException",
    "SearchException",
    "InvalidInputException",
    "ExpansionInputTooLongException",
    "ModelNotReadyException",
    "CaptionUnavailableException",
    "DependencyUnavailableException",
    "VectorIndexNotReadyException",
    "SearchUnavailableException",
]
