"""
健康检查端点

GET /health - 基础健康检查
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from config import app_config
from core.rag.embedding_service import embedding_provider
from libs.factory import infra_registry
from utils import get_component_logger, to_isoformat

logger = get_component_logger(__name__, "HealthCheck")

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    基础健康检查

    返回服务状态以及向量索引与embedding模型的可用性，
    依赖不可用时服务仍可降级运行，状态为 degraded
    """
    vector_index_ok = False
    services = infra_registry.get_cached_services()
    if services is not None:
        vector_index_ok = await services.vector_index.ping()

    model_ready = embedding_provider.is_ready
    status = "healthy" if vector_index_ok and model_ready else "degraded"

    return JSONResponse(
        status_code=200,
        content={
            "status": status,
            "service": app_config.APP_NAME,
            "vector_index": vector_index_ok,
            "embedding_model": model_ready,
            "timestamp": to_isoformat()
        }
    )
