"""
FastAPI主应用入口

该模块是整个API服务的入口点，负责创建FastAPI应用实例、
注册路由器、配置中间件和异常处理。

核心功能:
- FastAPI应用初始化
- 基础设施与检索服务的生命周期管理
- 路由器注册
- 全局异常处理
"""

import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import app_config
from controllers import app_router, __version__
from libs.exceptions import BaseHTTPException
from libs.factory import infra_registry
from utils import get_component_logger, configure_logging, to_isoformat

# 配置日志
logger = get_component_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动时执行
    configure_logging()
    await infra_registry.create_clients()
    await infra_registry.test_clients()
    await infra_registry.create_services()

    yield
    # 关闭时执行
    await infra_registry.shutdown_clients()


# 创建FastAPI应用
app = FastAPI(
    title="多模态商品检索API",
    description="文本与以图搜图的商品检索服务",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# 配置CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# 全局异常处理
@app.exception_handler(BaseHTTPException)
async def api_exception_handler(_, exc: BaseHTTPException):
    """处理自定义API异常"""
    return JSONResponse(
        status_code=exc.http_status_code,
        content={
            "success": False,
            **exc.data,
            "timestamp": to_isoformat()
        }
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_, exc: RequestValidationError):
    """请求参数校验失败"""
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "code": 3000001,
            "message": "INVALID_INPUT",
            "detail": [
                {"loc": list(error["loc"]), "msg": error["msg"]} for error in exc.errors()
            ],
            "timestamp": to_isoformat()
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """处理未捕获的异常"""
    logger.error(f"未捕获异常: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": {
                "code": "INTERNAL_SERVER_ERROR",
                "message": "服务器内部错误",
                "details": None
            },
            "timestamp": to_isoformat(),
            "path": str(request.url)
        }
    )


# 注册路由器
app.include_router(app_router, prefix="/v1")


# 根路径健康检查
@app.get("/")
async def root():
    """根路径健康检查"""
    return {
        "service": app_config.APP_NAME,
        "status": "运行中",
        "version": __version__,
        "docs": "/docs"
    }


def main():
    """Main entry point for the application."""
    uvicorn.run(
        "main:app",
        host=app_config.APP_HOST,
        port=app_config.APP_PORT,
        reload=app_config.DEBUG,
        log_level=app_config.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    main()
