import asyncio

from exifserve.app.composition import create_app_dependencies
from exifserve.app.config.settings import Settings
from exifserve.app.infrastructure.exiftool.exiftool_process import ExifTool


def test_settings_defaults(monkeypatch):
    for name in ("EXIFTOOL_PATH", "READ_CHUNK_SIZE", "HOST", "PORT"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings(_env_file=None)
    assert settings.exiftool_path == "exiftool"
    assert settings.read_chunk_size == 65536
    assert settings.port == 8080


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("EXIFTOOL_PATH", "/opt/exiftool/exiftool")
    monkeypatch.setenv("PORT", "9090")
    settings = Settings(_env_file=None)
    assert settings.exiftool_path == "/opt/exiftool/exiftool"
    assert settings.port == 9090


def test_tag_source_factory_builds_listx_command_per_request():
    deps = create_app_dependencies(Settings(EXIFTOOL_PATH="/usr/bin/exiftool", READ_CHUNK_SIZE=1024))

    first = deps.tag_source_factory(asyncio.Event())
    second = deps.tag_source_factory(asyncio.Event())

    assert isinstance(first, ExifTool)
    assert first is not second
    assert first.argv == ["/usr/bin/exiftool", "-listx"]
