import asyncio
import base64
import io
import json
from collections.abc import Callable
from typing import Any

import httpx
import PIL.Image
import pytest

from imagegen.config.settings import ServiceConfig
from imagegen.image.image_utils import strip_data_uri
from imagegen.image.sd_webui_client import SDWebUIClient

BASE_URL = "http://sd.test"


def make_png_base64(color: tuple[int, int, int] = (255, 0, 0), size: int = 8) -> str:
    image = PIL.Image.new("RGB", (size, size), color)
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode("ascii")


class FakeWebUI:
    """In-memory stand-in for the WebUI txt2img and png-info endpoints."""

    def __init__(
        self,
        images: list[str] | None = None,
        infos: list[str] | None = None,
        info_delays: list[float] | None = None,
    ):
        self.images = images if images is not None else [make_png_base64()]
        self.infos = infos if infos is not None else [f"info {i}" for i in range(len(self.images))]
        self.info_delays = info_delays
        self.requests: list[tuple[str, dict[str, Any]]] = []

    def paths(self) -> list[str]:
        return [path for path, _ in self.requests]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else {}
        self.requests.append((request.url.path, body))

        if request.url.path == "/sdapi/v1/txt2img":
            return httpx.Response(200, json={"images": self.images, "parameters": body})

        if request.url.path == "/sdapi/v1/png-info":
            index = [strip_data_uri(image) for image in self.images].index(
                strip_data_uri(body["image"])
            )
            if self.info_delays:
                await asyncio.sleep(self.info_delays[index])
            return httpx.Response(200, json={"info": self.infos[index], "items": {}})

        return httpx.Response(404, json={"detail": "Not Found"})


@pytest.fixture
def png_base64() -> str:
    return make_png_base64()


@pytest.fixture
def output_dir(tmp_path) -> str:
    return str(tmp_path / "output")


@pytest.fixture
def service_config(output_dir: str) -> ServiceConfig:
    return ServiceConfig(base_url=BASE_URL, output_dir=output_dir, request_timeout_ms=5000)


@pytest.fixture
def make_client(service_config: ServiceConfig) -> Callable[..., SDWebUIClient]:
    """Build an SDWebUIClient whose HTTP traffic goes to ``handler``."""

    def _make(handler: Callable, config: ServiceConfig | None = None) -> SDWebUIClient:
        config = config or service_config
        http_client = httpx.AsyncClient(
            base_url=config.base_url, transport=httpx.MockTransport(handler)
        )
        return SDWebUIClient(config, client=http_client)

    return _make
