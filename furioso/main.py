import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from mangum import Mangum
from starlette.middleware.cors import CORSMiddleware

from furioso import containers
from furioso.config import settings
from furioso.core.exception_handlers import register_exception_handlers
from furioso.core.logging_middleware import LoggingMiddleware
from furioso.logging_config import setup_logging
from furioso.routers import (
    admin_coin_router,
    admin_shop_router,
    audit_router,
    coin_router,
    health_router,
    shop_router,
    user_router,
)

load_dotenv("furioso/.env")
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)
    app.container = containers.Container()  # type: ignore

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)
    register_exception_handlers(app)

    for module in (
        health_router,
        user_router,
        coin_router,
        shop_router,
        admin_coin_router,
        admin_shop_router,
        audit_router,
    ):
        app.include_router(module.router, prefix=settings.API_V1_STR)

    logger.info(f"{settings.APP_NAME} started ({settings.ENVIRONMENT})")
    return app


app = create_app()

handler = Mangum(app)
