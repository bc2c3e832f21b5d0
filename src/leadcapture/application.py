import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dishka import AsyncContainer
from dishka.integrations.fastapi import setup_dishka
from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from leadcapture.api import register_routers
from leadcapture.api.errors import register_exception_handlers
from leadcapture.ioc import get_async_container
from leadcapture.services.logging import setup_logging
from leadcapture.settings import Config, get_config

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("Starting application...")
    yield
    logger.info("Shutting down application...")
    await app.state.dishka_container.close()


def create_app(config: Config, container: AsyncContainer) -> FastAPI:
    app = FastAPI(
        title=config.api.title,
        version=config.api.version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.allowed_hosts,
        allow_credentials=False,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    api_router = APIRouter()
    register_routers(api_router)
    app.include_router(api_router)

    setup_dishka(container, app)

    return app


def get_production_app() -> FastAPI:
    """Get the FastAPI application instance."""
    config = get_config()
    setup_logging(config.env)
    return create_app(config, get_async_container(config))
