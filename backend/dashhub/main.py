import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dashhub.api.api_v1.api import api_router
from dashhub.core.config import settings
from dashhub.core.exceptions import DashHubError
from dashhub.services.container import ServiceContainer

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


async def dashhub_error_handler(request: Request, exc: DashHubError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error_code, "message": exc.message, "details": exc.details},
        headers=headers,
    )


def create_app(services: Optional[ServiceContainer] = None) -> FastAPI:
    """应用工厂：每个进程只构造一个 ServiceContainer"""
    container = services or ServiceContainer()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        await container.start()
        logger.info(f"{settings.PROJECT_NAME} 已启动")
        try:
            yield
        finally:
            container.stop()
            logger.info(f"{settings.PROJECT_NAME} 已停止")

    app = FastAPI(
        title=f"{settings.PROJECT_NAME} API",
        description="Dashboard sharing, RBAC and scheduled report delivery",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = container

    # Set up CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(DashHubError, dashhub_error_handler)
    app.include_router(api_router, prefix=settings.API_V1_STR)
    return app
