import shutil

from typing import Any
from fastapi import APIRouter, Request, Response
from loguru import logger

from exifserve.app.core import SERVICE_NAME

health_router = APIRouter(tags=["Health"])

def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")

@health_router.get(
    "/health/live",
    summary="Liveness probe",
    description="Returns 200 if the API process is running. Used to confirm the service is running.",
    responses={200: {"description": "Service is alive."}},
)
async def live() -> dict:
    return {"status": "ok"}


@health_router.get(
    "/health/ready",
    summary="Readiness probe",
    description="Returns 200 only when the tag source is wired and the configured exiftool executable can be found. Used to confirm the service is ready to accept requests.",
    responses={
        200: {"description": "exiftool is available."},
        503: {"description": "Tag source not initialized or exiftool not found."},
    },
)
async def ready(request: Request) -> Response:
    settings = getattr(request.app.state, "settings", None)
    factory = getattr(request.app.state, "tag_source_factory", None)
    if settings is None or factory is None:
        _log("components_not_initialized")
        return Response(status_code=503, content="Not ready")
    if shutil.which(settings.exiftool_path) is None:
        _log("exiftool_not_found", exiftool_path=settings.exiftool_path)
        return Response(status_code=503, content="exiftool not found")
    return Response(status_code=200, content="OK")
