"""
Composition root: single place where concrete implementations are wired.

Builds settings and the per-request tag source factory. Used by lifespan to
populate app.state. No DI container library; explicit wiring only.
"""

from exifserve.app.config.settings import Settings
from exifserve.app.infrastructure.exiftool.factory import create_tag_source_factory
from exifserve.app.ports.tag_source import TagSourceFactory


class AppDependencies:
    """Holds wired dependencies. Built only in composition root."""

    def __init__(
        self,
        *,
        settings: Settings,
        tag_source_factory: TagSourceFactory,
    ) -> None:
        self._settings = settings
        self._tag_source_factory = tag_source_factory

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def tag_source_factory(self) -> TagSourceFactory:
        return self._tag_source_factory


def create_app_dependencies(settings: Settings | None = None) -> AppDependencies:
    """
    Composition root: build all app dependencies in one place.
    exiftool processes are started per request by the factory, so there is
    no connect/close lifecycle here.
    """
    _settings = settings or Settings()
    return AppDependencies(
        settings=_settings,
        tag_source_factory=create_tag_source_factory(_settings),
    )
