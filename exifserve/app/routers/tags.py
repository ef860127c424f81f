from __future__ import annotations

import asyncio

from fastapi import APIRouter, Request, Response
from loguru import logger

from exifserve.app.core import SERVICE_NAME
from exifserve.app.ports.tag_source import TagSourceStartError
from exifserve.app.routers.streaming import TagStreamResponse


tags_router = APIRouter(tags=["Tags"])


@tags_router.get(
    "/tags",
    summary="Stream the exiftool tag catalogue",
    description="Runs `exiftool -listx` and streams every tag it knows as `{\"tags\": [...]}`. The body is produced while exiftool runs; a failure after the status line was sent leaves the JSON document truncated.",
    responses={
        200: {"description": "Tags document, streamed."},
        500: {"description": "exiftool could not be started."},
        503: {"description": "Tag source not configured."},
    },
)
async def get_tags(request: Request) -> Response:
    factory = getattr(request.app.state, "tag_source_factory", None)
    if factory is None:
        return Response(status_code=503, content="Tag source not available")

    cancelled = asyncio.Event()
    tag_source = factory(cancelled)
    try:
        await tag_source.start()
    except TagSourceStartError as exc:
        await tag_source.close()
        logger.bind(service_name=SERVICE_NAME, event="exiftool_start_failed").error(
            "tag_source.start: {}", exc
        )
        return Response(status_code=500, content="Internal Server Error")

    return TagStreamResponse(tag_source, cancelled)
