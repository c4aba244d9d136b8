"""User NFT scans and collection holder lists, memoized per request key.

A scan resolves a Farcaster user to wallets, lists NFTs across all wallets
concurrently, then enriches each distinct collection with a floor price.
Identity and asset listing are required data: their failure fails the scan
and nothing is cached. Prices degrade to zero.
"""
import asyncio
import logging

import httpx

from app.core.cache import Caches, derive_key
from app.core.config import settings
from app.core.errors import MissingKeyInputError
from app.models.schemas import FloorPrice, HoldersResult, NFTAsset, ScanResult
from app.services.asset_service import list_assets, list_holders
from app.services.identity_service import resolve_identity
from app.services.price_service import get_floor_price

logger = logging.getLogger(__name__)


def scan_key(fid: int | None = None, username: str | None = None) -> str:
    """``fid:<fid>`` when a FID is given, else ``user:<username>``."""
    if fid is not None:
        return derive_key("fid", fid)
    if username and username.strip():
        return derive_key("user", username.strip().lstrip("@"))
    raise MissingKeyInputError("Missing FID parameter")


async def _price_contracts(
    contracts: list[str],
    caches: Caches,
    client: httpx.AsyncClient,
) -> dict[str, FloorPrice]:
    prices = await asyncio.gather(*[get_floor_price(c, caches, client) for c in contracts])
    return {c.lower(): p for c, p in zip(contracts, prices)}


async def _run_scan(
    fid: int | None,
    username: str | None,
    caches: Caches,
    client: httpx.AsyncClient,
) -> ScanResult:
    identity = await resolve_identity(fid=fid, username=username, client=client)
    wallets = identity.addresses

    per_wallet = await asyncio.gather(*[
        list_assets(
            wallet,
            exclude_spam=settings.SCAN_EXCLUDE_SPAM,
            page_size=settings.SCAN_PAGE_SIZE,
            client=client,
        )
        for wallet in wallets
    ])

    contracts: list[str] = []
    seen: set[str] = set()
    for assets in per_wallet:
        for asset in assets:
            lowered = asset.contract_address.lower()
            if lowered and lowered not in seen:
                seen.add(lowered)
                contracts.append(asset.contract_address)

    prices = await _price_contracts(contracts, caches, client)

    nfts: list[NFTAsset] = []
    for wallet, assets in zip(wallets, per_wallet):
        custody = identity.is_custody(wallet)
        for asset in assets:
            floor = prices.get(asset.contract_address.lower(), FloorPrice())
            nfts.append(asset.model_copy(update={
                "is_custody": custody,
                "floor_price": floor.value_or_zero,
            }))

    total_value = round(sum(n.floor_price for n in nfts), 6)
    logger.info(
        "Scanned fid %s: %d wallets, %d NFTs, %d collections",
        identity.fid, len(wallets), len(nfts), len(contracts),
    )
    return ScanResult(
        user=identity.username,
        fid=identity.fid,
        display_name=identity.display_name,
        pfp=identity.pfp_url,
        wallet_count=len(wallets),
        total_found=len(nfts),
        total_value_eth=total_value,
        nfts=nfts,
    )


async def scan_user(
    caches: Caches,
    fid: int | None = None,
    username: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> ScanResult:
    """Scan a user's wallets, served from the 5-minute scan cache when fresh."""
    key = scan_key(fid, username)

    async def produce() -> ScanResult:
        if client is not None:
            return await _run_scan(fid, username, caches, client)
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT) as own_client:
            return await _run_scan(fid, username, caches, own_client)

    return await caches.scans.fetch_through(key, produce)


async def collection_holders(
    contract: str,
    caches: Caches,
    client: httpx.AsyncClient | None = None,
) -> HoldersResult:
    """Owner list for a contract, served from the hourly holders cache when fresh."""
    key = derive_key("holders", contract)

    async def produce() -> HoldersResult:
        holders = await list_holders(contract, settings.HOLDERS_MAX_PAGES, client)
        return HoldersResult(contract=contract.lower(), holder_count=len(holders), holders=holders)

    return await caches.holders.fetch_through(key, produce)
