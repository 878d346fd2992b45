"""
FastAPI 应用配置

配置 CORS、路由注册、异常处理和服务生命周期。
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import AppConfig, get_config
from ..exceptions import BackendUnavailable, SubmissionRejected
from ..services import SensorServices
from .routers import sensors

logger = logging.getLogger(__name__)


def create_app(config: Optional[AppConfig] = None, services: Optional[SensorServices] = None) -> FastAPI:
    """
    创建 FastAPI 应用实例

    Args:
        config: 应用配置，不指定则加载全局配置
        services: 已装配的服务容器（测试时注入），不指定则按配置创建
    """
    if services is None:
        config = config or get_config()
        services = SensorServices(config)
    config = services.config

    app = FastAPI(
        title="Sensor Monitor",
        description="传感器数据采集与时序聚合服务",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json"
    )
    app.state.services = services

    # CORS 中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 注册路由
    app.include_router(sensors.router)

    @app.exception_handler(SubmissionRejected)
    async def submission_rejected_handler(request: Request, exc: SubmissionRejected):
        logger.info(f"Upload rejected: {exc}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc)}
        )

    @app.exception_handler(BackendUnavailable)
    async def backend_unavailable_handler(request: Request, exc: BackendUnavailable):
        logger.error(f"Backend unavailable on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Storage backend unavailable"}
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"}
        )

    @app.on_event("startup")
    async def startup_event():
        logger.info("Sensor Monitor starting up...")
        try:
            await services.start()
        except BackendUnavailable as e:
            # 后续请求会自动重连，不阻止启动
            logger.error(f"Redis not reachable at startup: {e}")

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Sensor Monitor shutting down...")
        await services.stop()

    return app
