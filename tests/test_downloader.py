import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from es_provision.exceptions import DownloadError
from es_provision.net.downloader import Downloader

BODY = b"x" * 300_000


async def _archive(request: web.Request) -> web.Response:
    return web.Response(body=BODY, content_type="application/zip")


async def _slow(request: web.Request) -> web.Response:
    await asyncio.sleep(2)
    return web.Response(body=b"late")


def _run_against_server(path: str, downloader: Downloader, destination):
    async def scenario():
        app = web.Application()
        app.router.add_get("/downloads/es.zip", _archive)
        app.router.add_get("/downloads/slow.zip", _slow)
        async with TestServer(app) as server:
            url = str(server.make_url(path))
            return await downloader.download_file(url, str(destination))

    return asyncio.run(scenario())


def test_download_streams_the_body_to_disk(tmp_path):
    destination = tmp_path / "es.zip"

    written = _run_against_server("/downloads/es.zip", Downloader(), destination)

    assert written == len(BODY)
    assert destination.read_bytes() == BODY


def test_http_error_status_is_a_download_error(tmp_path):
    with pytest.raises(DownloadError, match="404"):
        _run_against_server("/downloads/missing.zip", Downloader(), tmp_path / "x.zip")


def test_download_is_bounded_by_the_timeout(tmp_path):
    with pytest.raises(DownloadError):
        _run_against_server(
            "/downloads/slow.zip", Downloader(timeout=0.3), tmp_path / "slow.zip"
        )


def test_unwritable_destination_is_a_download_error(tmp_path):
    destination = tmp_path / "missing-dir" / "es.zip"
    with pytest.raises(DownloadError):
        _run_against_server("/downloads/es.zip", Downloader(), destination)
