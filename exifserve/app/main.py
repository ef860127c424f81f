from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from exifserve.app.composition import create_app_dependencies
from exifserve.app.core import SERVICE_NAME
from exifserve.app.routers.health import health_router
from exifserve.app.routers.tags import tags_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.bind(service_name=SERVICE_NAME, event="api_starting").info("")
    deps = create_app_dependencies()
    app.state.settings = deps.settings
    app.state.tag_source_factory = deps.tag_source_factory
    try:
        yield
    finally:
        logger.bind(service_name=SERVICE_NAME, event="api_stopping").info("")


app = FastAPI(
    title="exifserve",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(tags_router)


def run() -> None:
    import uvicorn

    settings = create_app_dependencies().settings
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="info")


if __name__ == "__main__":
    run()
