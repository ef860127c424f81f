"""End-to-end GET /tags through the real process wrapper.

A Python script stands in for exiftool; the real binary is used when it is
installed.
"""
from __future__ import annotations

import json
import shutil

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from exifserve.app.config.settings import Settings
from exifserve.app.infrastructure.exiftool.factory import create_tag_source_factory
from exifserve.app.routers.tags import tags_router
from tests.conftest import write_fake_exiftool
from tests.test_data import LISTX_SAMPLE, LISTX_SAMPLE_PATHS, listx_with_tags


def _app(exiftool_path: str) -> FastAPI:
    settings = Settings(EXIFTOOL_PATH=exiftool_path, READ_CHUNK_SIZE=512)
    app = FastAPI()
    app.state.settings = settings
    app.state.tag_source_factory = create_tag_source_factory(settings)
    app.include_router(tags_router)
    return app


@pytest.mark.integration
def test_get_tags_from_fake_exiftool(tmp_path):
    script = write_fake_exiftool(tmp_path, f"import sys\nsys.stdout.buffer.write({LISTX_SAMPLE!r})\n")
    client = TestClient(_app(str(script)))

    r = client.get("/tags")

    assert r.status_code == 200
    assert [t["path"] for t in r.json()["tags"]] == LISTX_SAMPLE_PATHS


@pytest.mark.integration
def test_get_tags_large_output_is_streamed(tmp_path):
    xml = listx_with_tags(table_count=20, tags_per_table=500)
    script = write_fake_exiftool(tmp_path, f"import sys\nsys.stdout.buffer.write({xml!r})\n")
    client = TestClient(_app(str(script)))

    with client.stream("GET", "/tags") as r:
        assert r.status_code == 200
        body = b"".join(r.iter_bytes())

    tags = json.loads(body)["tags"]
    assert len(tags) == 10_000
    assert tags[-1]["path"] == "Table19:Tag499"


@pytest.mark.integration
def test_get_tags_malformed_output_truncates_body(tmp_path):
    script = write_fake_exiftool(
        tmp_path,
        "import sys, time\n"
        "sys.stdout.write('<taginfo><table><tag name=\"X\"/>')\n"
        "sys.stdout.flush()\n"
        "time.sleep(30)\n",
    )
    client = TestClient(_app(str(script)))

    r = client.get("/tags")

    assert r.status_code == 200
    assert r.text == '{"tags": ['


@pytest.mark.integration
def test_get_tags_500_when_exiftool_missing(tmp_path):
    client = TestClient(_app(str(tmp_path / "missing-exiftool")))
    r = client.get("/tags")
    assert r.status_code == 500


@pytest.mark.integration
@pytest.mark.skipif(shutil.which("exiftool") is None, reason="exiftool not installed")
def test_get_tags_from_installed_exiftool():
    client = TestClient(_app("exiftool"))

    r = client.get("/tags")

    assert r.status_code == 200
    tags = r.json()["tags"]
    assert tags
    for tag in tags[:50]:
        assert tag["path"].startswith(tag["group"] + ":")
        assert isinstance(tag["writable"], bool)
        assert isinstance(tag["description"], dict)
