import asyncio
import logging

import httpx
import pytest

from fakes import FIXED_NOW
from palace3d.core.errors import ServiceError
from palace3d.services.model_providers import MockModelProvider, StableFast3DProvider
from palace3d.utils.glb import looks_like_glb

URL = "https://api.stability.ai/v2beta/3d/stable-fast-3d"


def _provider(handler) -> StableFast3DProvider:
    return StableFast3DProvider(api_key="sk-test", url=URL, transport=httpx.MockTransport(handler))


def test_generate_posts_multipart_image():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, content=b"glTF-binary")

    payload = asyncio.run(_provider(handler).generate(b"\x89PNGimage", FIXED_NOW))

    request = seen["request"]
    body = request.content
    assert payload == b"glTF-binary"
    assert request.method == "POST"
    assert request.headers["authorization"] == "Bearer sk-test"
    assert request.headers["content-type"].startswith("multipart/form-data")
    assert b'name="image"; filename="image_20240101_120000.png"' in body
    assert b"Content-Type: image/png" in body
    assert b"\x89PNGimage" in body


def test_error_status_captures_body(caplog):
    handler = lambda request: httpx.Response(400, text='{"errors":["image too small"]}')

    with caplog.at_level(logging.ERROR), pytest.raises(ServiceError) as excinfo:
        asyncio.run(_provider(handler).generate(b"png", FIXED_NOW))

    assert excinfo.value.status == 400
    assert excinfo.value.body == '{"errors":["image too small"]}'
    assert "image too small" in caplog.text


def test_transport_error_is_service_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(ServiceError):
        asyncio.run(_provider(handler).generate(b"png", FIXED_NOW))


def test_mock_provider_returns_glb():
    assert looks_like_glb(asyncio.run(MockModelProvider().generate(b"png")))
