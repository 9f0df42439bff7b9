from __future__ import annotations

import asyncio
from typing import Any, Callable

import httpx
import pytest

from pos_data_sdk.config import ClientConfig
from pos_data_sdk.http_client import HttpClient

BASE_URL = "https://pos.example.com"
API_ROOT = f"{BASE_URL}/api/v1"


@pytest.fixture()
def config() -> ClientConfig:
    return ClientConfig(
        env_name="test",
        api_base_url=BASE_URL,
        retries=0,
        retry_backoff_seconds=0,
        search_debounce_ms=0,
    )


@pytest.fixture()
def make_http(config: ClientConfig) -> Callable[..., HttpClient]:
    def _make(handler: Callable[[httpx.Request], Any], **kwargs: Any) -> HttpClient:
        cfg = kwargs.pop("config", config)
        return HttpClient(cfg, transport=httpx.MockTransport(handler), **kwargs)

    return _make


async def wait_until(predicate: Callable[[], bool], *, spins: int = 200) -> None:
    for _ in range(spins):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition was never met")


@pytest.fixture()
def until() -> Callable[..., Any]:
    return wait_until
