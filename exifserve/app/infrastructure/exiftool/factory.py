"""Tag source factory: builds one exiftool wrapper per request from settings."""
from __future__ import annotations

import asyncio

from exifserve.app.config.settings import Settings
from exifserve.app.infrastructure.exiftool.exiftool_process import ExifTool
from exifserve.app.ports.tag_source import TagSource, TagSourceFactory


def create_tag_source_factory(settings: Settings) -> TagSourceFactory:
    def create_tag_source(cancelled: asyncio.Event) -> TagSource:
        return ExifTool.listx(
            settings.exiftool_path,
            cancelled=cancelled,
            chunk_size=settings.read_chunk_size,
        )

    return create_tag_source
