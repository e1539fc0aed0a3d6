"""
API控制器包

组织结构:
- workspace/: 商品检索端点
- console/: 健康检查端点
- dependencies.py: 依赖注入
"""

from fastapi import APIRouter

from .console import health_router
from .workspace import products_router


app_router = APIRouter()

app_router.include_router(products_router, prefix="/products", tags=["products"])
app_router.include_router(health_router, tags=["health"])


__version__ = "0.1.0"
