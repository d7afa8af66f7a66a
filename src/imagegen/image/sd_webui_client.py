"""
Stable Diffusion WebUI API client.

Calls two endpoints of an AUTOMATIC1111/Forge-compatible server:

- ``POST /sdapi/v1/txt2img``: generate images, returns ``{"images": [...]}``
- ``POST /sdapi/v1/png-info``: read back the generation parameters of one
  image, returns ``{"info": "..."}``

One ``httpx.AsyncClient`` is created per process and shared by every
invocation. Nothing is retried: the first failed call aborts the invocation.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from contextlib import suppress
from typing import Any, TypeVar

import httpx
from httpx import AsyncClient, HTTPStatusError, RequestError, TimeoutException

from imagegen.config.logging_config import get_logger
from imagegen.config.settings import ServiceConfig
from imagegen.image.errors import EmptyResultError, RemoteServiceError, UnexpectedError
from imagegen.image.image_utils import to_png_data_uri
from imagegen.image.types import GenerationRequest, RemoteImageResult

log = get_logger(__name__)

T = TypeVar("T")
U = TypeVar("U")

TXT2IMG_PATH = "/sdapi/v1/txt2img"
PNG_INFO_PATH = "/sdapi/v1/png-info"


async def gather_ordered(
    items: list[T],
    mapper: Callable[[T], Awaitable[U]],
    max_concurrent: int,
) -> list[U]:
    """Apply ``mapper`` to ``items`` concurrently, returning results in input order.

    If any call fails the remaining ones are cancelled and the first error is
    raised.
    """
    if max_concurrent <= 0:
        raise ValueError("max_concurrent must be a positive integer")
    if not items:
        return []

    semaphore = asyncio.Semaphore(max_concurrent)

    async def map_with_semaphore(item: T) -> U:
        async with semaphore:
            return await mapper(item)

    tasks = [asyncio.create_task(map_with_semaphore(item)) for item in items]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def _error_detail(response: httpx.Response) -> str:
    """Pull the most useful error text out of a failed WebUI response."""
    detail: Any = response.text
    with suppress(json.JSONDecodeError):
        body = response.json()
        if isinstance(body, dict):
            detail = body.get("error") or body.get("detail") or body.get("errors") or body
        else:
            detail = body
    if not isinstance(detail, str):
        detail = json.dumps(detail)
    return detail


class SDWebUIClient:
    """Async client for the WebUI txt2img and png-info endpoints."""

    def __init__(self, config: ServiceConfig, client: AsyncClient | None = None):
        self.config = config
        if client is None:
            auth = httpx.BasicAuth(*config.auth) if config.auth else None
            client = AsyncClient(
                base_url=config.base_url,
                headers={"Content-Type": "application/json"},
                timeout=config.timeout_seconds,
                auth=auth,
            )
        self._client = client

    async def __aenter__(self) -> "SDWebUIClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._client.post(path, json=payload)
            response.raise_for_status()
        except HTTPStatusError as e:
            status = e.response.status_code
            raise RemoteServiceError(
                f"API error: {status} {_error_detail(e.response)}", status_code=status
            ) from e
        except (TimeoutException, httpx.NetworkError) as e:
            raise RemoteServiceError(f"No response: {e!s} ({type(e).__name__})") from e
        except RequestError as e:
            raise RemoteServiceError(f"Request error: {e!s}") from e

        try:
            data = response.json()
        except json.JSONDecodeError as e:
            raise UnexpectedError(f"{path} returned a non-JSON body: {e!s}") from e
        if not isinstance(data, dict):
            raise UnexpectedError(f"{path} returned {type(data).__name__}, expected an object")
        return data

    async def txt2img(self, request: GenerationRequest) -> list[str]:
        payload = request.to_api_payload()
        log.debug(
            f"txt2img: steps={payload['steps']} size={payload['width']}x{payload['height']} "
            f"n_iter={payload['n_iter']} seed={payload['seed']}"
        )
        data = await self._post(TXT2IMG_PATH, payload)
        images = data.get("images") or []
        if not images:
            raise EmptyResultError()
        log.debug(f"txt2img returned {len(images)} image(s)")
        return list(images)

    async def png_info(self, image: str) -> str:
        data = await self._post(PNG_INFO_PATH, {"image": to_png_data_uri(image)})
        info = data.get("info")
        return info if isinstance(info, str) else ""

    async def generate(self, request: GenerationRequest) -> list[RemoteImageResult]:
        """Run txt2img, then fetch png-info for every returned image.

        Result ``i`` always pairs image ``i`` with its own metadata.
        """
        images = await self.txt2img(request)

        async def with_info(image: str) -> RemoteImageResult:
            return RemoteImageResult(image=image, info=await self.png_info(image))

        return await gather_ordered(
            images, with_info, max_concurrent=self.config.metadata_concurrency
        )
