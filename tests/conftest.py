"""Shared test fixtures - fake clock, fresh caches, and a mock HTTP transport for upstream APIs."""

import copy
import os

import httpx
import pytest

# Set required env vars before any app imports
os.environ.setdefault("NEYNAR_API_KEY", "test-neynar-key")
os.environ.setdefault("ALCHEMY_API_KEY", "test-alchemy-key")
os.environ.setdefault("ALCHEMY_NETWORK", "base-mainnet")

from app.core.cache import Caches, TTLCache  # noqa: E402


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def caches(clock):
    return Caches(
        scans=TTLCache(300, 500, clock, name="scans"),
        prices=TTLCache(900, 1000, clock, name="prices"),
        holders=TTLCache(3600, 1000, clock, name="holders"),
    )


def make_client(routes: dict, calls: list | None = None) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by path suffix.

    routes maps a path suffix (e.g. "/user/bulk") to a dict (200 JSON),
    an httpx.Response, or a callable(request) returning either.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        for suffix, answer in routes.items():
            if request.url.path.endswith(suffix):
                if callable(answer):
                    answer = answer(request)
                if isinstance(answer, httpx.Response):
                    return answer
                return httpx.Response(200, json=answer)
        return httpx.Response(404, json={"message": "not found"})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


NEYNAR_USER = {
    "fid": 99,
    "username": "fiendlord",
    "display_name": "Fiend Lord",
    "pfp_url": "https://img.example/pfp.png",
    "custody_address": "0xCustody0000000000000000000000000000000001",
    "verified_addresses": {
        "eth_addresses": [
            "0xverified000000000000000000000000000000002",
            "0xcustody0000000000000000000000000000000001",
        ]
    },
}


def owned_nft(contract: str, token_id: str, name: str | None = "Fiend", image: str | None = "https://img.example/1.png"):
    return {
        "contract": {"address": contract, "name": "Fiends"},
        "tokenId": token_id,
        "name": name,
        "image": {"cachedUrl": image} if image else {},
        "raw": {"metadata": {}},
    }


@pytest.fixture
def mock_http():
    """Factory for AsyncClients backed by make_client()."""
    return make_client


@pytest.fixture
def neynar_user():
    return copy.deepcopy(NEYNAR_USER)


@pytest.fixture
def nft_entry():
    return owned_nft
