"""Tests for Alchemy NFT listing normalization and holder pagination."""

import logging

import httpx
import pytest

from app.core.config import settings
from app.core.errors import UpstreamError
from app.services.asset_service import list_assets, list_holders, parse_owned_nft

WALLET = "0x1111111111111111111111111111111111111111"
CONTRACT = "0x2222222222222222222222222222222222222222"


class TestParseOwnedNft:
    def test_image_precedence(self):
        nft = {
            "contract": {"address": CONTRACT, "name": "Fiends"},
            "tokenId": "7",
            "name": "Fiend #7",
            "image": {"pngUrl": "png", "originalUrl": "orig"},
            "raw": {"metadata": {"image": "ipfs://x"}},
        }
        assert parse_owned_nft(nft).image == "png"

    def test_raw_metadata_image_fallback(self):
        nft = {"contract": {"address": CONTRACT}, "tokenId": "1", "raw": {"metadata": {"image": "ipfs://x"}}}
        asset = parse_owned_nft(nft)
        assert asset.image == "ipfs://x"
        assert asset.name == "Token #1"
        assert asset.collection_name == "Unknown Collection"

    def test_name_falls_back_to_contract_name(self, nft_entry):
        asset = parse_owned_nft(nft_entry(CONTRACT, "3", name=None))
        assert asset.name == "Fiends"

    def test_no_image_skipped(self, nft_entry):
        assert parse_owned_nft(nft_entry(CONTRACT, "3", image=None)) is None


class TestListAssets:
    @pytest.mark.asyncio
    async def test_lists_and_filters(self, mock_http, nft_entry):
        calls = []
        client = mock_http({
            "/getNFTsForOwner": {"ownedNfts": [
                nft_entry(CONTRACT, "1"),
                nft_entry(CONTRACT, "2", image=None),
            ]},
        }, calls)

        assets = await list_assets(WALLET, client=client)

        assert [a.token_id for a in assets] == ["1"]
        params = calls[0].url.params
        assert params["owner"] == WALLET
        assert params["pageSize"] == "50"
        assert params["excludeFilters[]"] == "SPAM"
        assert calls[0].url.path.startswith("/nft/v3/")

    @pytest.mark.asyncio
    async def test_spam_filter_optional(self, mock_http):
        calls = []
        client = mock_http({"/getNFTsForOwner": {"ownedNfts": []}}, calls)
        await list_assets(WALLET, exclude_spam=False, page_size=10, client=client)
        assert "excludeFilters[]" not in calls[0].url.params
        assert calls[0].url.params["pageSize"] == "10"

    @pytest.mark.asyncio
    async def test_error_raises_upstream(self, mock_http):
        client = mock_http({"/getNFTsForOwner": httpx.Response(429, text="rate limited")})
        with pytest.raises(UpstreamError):
            await list_assets(WALLET, client=client)


class TestListHolders:
    @pytest.mark.asyncio
    async def test_follows_page_key(self, mock_http):
        pages = iter([
            {"owners": ["0xa", "0xb"], "pageKey": "next"},
            {"owners": ["0xc"]},
        ])
        calls = []
        client = mock_http({"/getOwnersForContract": lambda request: httpx.Response(200, json=next(pages))}, calls)

        holders = await list_holders(CONTRACT, max_pages=5, client=client)

        assert holders == ["0xa", "0xb", "0xc"]
        assert len(calls) == 2
        assert calls[1].url.params["pageKey"] == "next"

    @pytest.mark.asyncio
    async def test_stops_at_max_pages(self, mock_http):
        calls = []
        client = mock_http({"/getOwnersForContract": {"owners": ["0xa"], "pageKey": "more"}}, calls)
        holders = await list_holders(CONTRACT, max_pages=3, client=client)
        assert len(calls) == 3
        assert holders == ["0xa", "0xa", "0xa"]


def _app_log(caplog) -> str:
    return "\n".join(r.getMessage() for r in caplog.records if r.name.startswith("app."))


class TestSecretsNotLogged:
    @pytest.mark.asyncio
    async def test_http_error_log_omits_api_key(self, mock_http, caplog):
        client = mock_http({"/getNFTsForOwner": httpx.Response(500, text="boom")})
        with caplog.at_level(logging.DEBUG):
            with pytest.raises(UpstreamError):
                await list_assets(WALLET, client=client)
        logged = _app_log(caplog)
        assert "HTTP 500" in logged
        assert settings.ALCHEMY_API_KEY not in logged
        assert "/nft/v3/" not in logged

    @pytest.mark.asyncio
    async def test_network_error_log_omits_api_key(self, caplog):
        def handler(request):
            raise httpx.ConnectError(f"cannot reach {request.url}", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        with caplog.at_level(logging.DEBUG):
            with pytest.raises(UpstreamError):
                await list_holders(CONTRACT, client=client)
        logged = _app_log(caplog)
        assert "ConnectError" in logged
        assert settings.ALCHEMY_API_KEY not in logged
