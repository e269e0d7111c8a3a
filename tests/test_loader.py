import asyncio
import httpx
import pytest
from boardide.errors import VersionLoadFailure
from boardide.session.loader import HttpLibraryLoader

URL = "https://cdn.test/board-lib@{version}/board.min.js"


def _loader(handler):
    return HttpLibraryLoader(URL, transport=httpx.MockTransport(handler))


def test_load_fetches_and_caches():
    requests = []

    def handler(request):
        requests.append(str(request.url))
        return httpx.Response(200, text="window.Board = function () {};")

    loader = _loader(handler)
    handle = asyncio.run(loader.load("0.3.1"))
    again = asyncio.run(loader.load("0.3.1"))

    assert handle.version == "0.3.1"
    assert handle.url == "https://cdn.test/board-lib@0.3.1/board.min.js"
    assert "Board" in handle.source
    assert again is handle
    assert len(requests) == 1
    assert loader.active is handle


def test_unload_clears_active():
    loader = _loader(lambda request: httpx.Response(200, text="lib"))
    handle = asyncio.run(loader.load("0.3.0"))
    asyncio.run(loader.unload(handle))
    assert loader.active is None


def test_http_error_is_load_failure():
    loader = _loader(lambda request: httpx.Response(404, text="not found"))
    with pytest.raises(VersionLoadFailure) as exc_info:
        asyncio.run(loader.load("9.9.9"))
    assert exc_info.value.version == "9.9.9"
    assert loader.active is None


def test_network_error_is_load_failure():
    def handler(request):
        raise httpx.ConnectError("offline", request=request)

    with pytest.raises(VersionLoadFailure):
        asyncio.run(_loader(handler).load("0.3.1"))


def test_empty_script_is_load_failure():
    loader = _loader(lambda request: httpx.Response(200, text="  \n"))
    with pytest.raises(VersionLoadFailure, match="empty library script"):
        asyncio.run(loader.load("0.3.1"))


def test_url_template_needs_placeholder():
    with pytest.raises(ValueError):
        HttpLibraryLoader("https://cdn.test/board.min.js")
