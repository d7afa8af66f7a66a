"""
Tests for the generate_image dispatcher.

These run the full pipeline (validation, payload, WebUI calls, file output)
against a mocked WebUI.
"""

import base64
import json
import os

import httpx
import PIL.Image
import pytest

from imagegen.image.errors import (
    EmptyResultError,
    InvalidParamsError,
    RemoteServiceError,
    UnexpectedError,
    UnknownToolError,
)
from imagegen.tools.image_tools import ImageTools, format_tool_result
from tests.conftest import FakeWebUI, make_png_base64


class TestDispatch:
    @pytest.mark.asyncio
    async def test_unknown_tool(self, make_client, service_config):
        webui = FakeWebUI()
        async with make_client(webui) as client:
            with pytest.raises(UnknownToolError, match="Unknown tool: edit_image") as exc_info:
                await ImageTools.call_tool("edit_image", {"prompt": "x"}, client, service_config)

        assert exc_info.value.kind == "unknown_tool"
        assert webui.requests == []

    @pytest.mark.asyncio
    async def test_routes_generate_image(self, make_client, service_config):
        webui = FakeWebUI(infos=["Steps: 4"])
        async with make_client(webui) as client:
            artifacts = await ImageTools.call_tool(
                "generate_image", {"prompt": "a cat"}, client, service_config
            )

        assert len(artifacts) == 1
        assert artifacts[0]["parameters"] == "Steps: 4"


class TestGenerateImage:
    @pytest.mark.asyncio
    async def test_invalid_steps_makes_no_remote_call(self, make_client, service_config):
        webui = FakeWebUI()
        async with make_client(webui) as client:
            with pytest.raises(InvalidParamsError) as exc_info:
                await ImageTools.generate_image({"prompt": "x", "steps": 0}, client, service_config)

        assert exc_info.value.kind == "invalid_params"
        assert webui.requests == []

    @pytest.mark.asyncio
    async def test_oversized_steps_is_invalid_params(self, make_client, service_config):
        webui = FakeWebUI()
        async with make_client(webui) as client:
            with pytest.raises(InvalidParamsError) as exc_info:
                await ImageTools.generate_image(
                    {"prompt": "x", "steps": 10**400}, client, service_config
                )

        assert exc_info.value.kind == "invalid_params"
        assert webui.requests == []

    @pytest.mark.asyncio
    async def test_batch_of_two(self, make_client, service_config, output_dir):
        images = [make_png_base64((255, 0, 0)), make_png_base64((0, 0, 255))]
        webui = FakeWebUI(images=images, infos=["A", "B"])

        async with make_client(webui) as client:
            artifacts = await ImageTools.generate_image(
                {"prompt": "x", "batch_size": 2}, client, service_config
            )

        assert [a["parameters"] for a in artifacts] == ["A", "B"]
        assert artifacts[0]["path"] != artifacts[1]["path"]
        assert all(os.path.dirname(a["path"]) == output_dir for a in artifacts)
        _, txt2img_body = webui.requests[0]
        assert txt2img_body["n_iter"] == 2

        # each file holds the pixels of the image it is paired with
        with PIL.Image.open(artifacts[1]["path"]) as image:
            assert image.convert("RGB").getpixel((0, 0)) == (0, 0, 255)
            assert image.text["parameters"] == "B"

    @pytest.mark.asyncio
    async def test_prompt_only_sends_defaults(self, make_client, service_config):
        webui = FakeWebUI()
        async with make_client(webui) as client:
            await ImageTools.generate_image({"prompt": "a cat"}, client, service_config)

        _, body = webui.requests[0]
        assert body["steps"] == 4
        assert body["width"] == 1024 and body["height"] == 1024
        assert body["cfg_scale"] == 1
        assert body["sampler_name"] == "Euler"
        assert body["scheduler_name"] == "Simple"
        assert body["seed"] == -1
        assert body["n_iter"] == 1
        assert body["distilled_cfg_scale"] == 3.5
        assert body["tiling"] is False and body["restore_faces"] is False

    @pytest.mark.asyncio
    async def test_empty_result(self, make_client, service_config):
        webui = FakeWebUI(images=[])
        async with make_client(webui) as client:
            with pytest.raises(EmptyResultError) as exc_info:
                await ImageTools.generate_image({"prompt": "x"}, client, service_config)

        assert exc_info.value.kind == "empty_result"
        assert os.listdir(service_config.output_dir) == []

    @pytest.mark.asyncio
    async def test_creates_missing_output_path_and_reuses_it(self, make_client, service_config, tmp_path):
        target = tmp_path / "nested" / "deeper" / "images"
        webui = FakeWebUI()

        async with make_client(webui) as client:
            first = await ImageTools.generate_image(
                {"prompt": "x", "output_path": str(target)}, client, service_config
            )
            second = await ImageTools.generate_image(
                {"prompt": "x", "output_path": f"  {target}  "}, client, service_config
            )

        assert target.is_dir()
        assert os.path.dirname(first[0]["path"]) == str(target)
        assert os.path.dirname(second[0]["path"]) == str(target)
        assert len(os.listdir(target)) == 2

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self, make_client, service_config):
        async def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(RemoteServiceError, match="No response"):
                await ImageTools.generate_image({"prompt": "x"}, client, service_config)

    @pytest.mark.asyncio
    async def test_decode_failure_is_unexpected(self, make_client, service_config):
        garbage = base64.b64encode(b"not an image").decode()
        webui = FakeWebUI(images=[garbage])

        async with make_client(webui) as client:
            with pytest.raises(UnexpectedError) as exc_info:
                await ImageTools.generate_image({"prompt": "x"}, client, service_config)

        assert exc_info.value.kind == "unexpected"
        assert exc_info.value.to_dict()["error"]["kind"] == "unexpected"
        assert os.listdir(service_config.output_dir) == []

    @pytest.mark.asyncio
    async def test_output_path_blocked_by_file(self, make_client, service_config, tmp_path):
        blocker = tmp_path / "file.txt"
        blocker.write_text("x")
        webui = FakeWebUI()

        async with make_client(webui) as client:
            with pytest.raises(UnexpectedError):
                await ImageTools.generate_image(
                    {"prompt": "x", "output_path": str(blocker)}, client, service_config
                )
        assert webui.requests == []


def test_format_tool_result():
    artifacts = [{"path": "/tmp/sd_1.png", "parameters": "A"}]
    result = format_tool_result(artifacts)

    assert result["content"][0]["type"] == "text"
    assert json.loads(result["content"][0]["text"]) == artifacts


def test_list_tools_advertises_generate_image():
    tools = ImageTools.list_tools()

    assert [tool["name"] for tool in tools] == ["generate_image"]
    assert tools[0]["inputSchema"]["required"] == ["prompt"]
