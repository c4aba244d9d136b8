"""NFT holdings via the Alchemy NFT API (v3 REST): owned NFTs per wallet and holders per contract."""
import logging

import httpx

from app.core.config import settings
from app.core.errors import ConfigError, UpstreamError
from app.models.schemas import NFTAsset

logger = logging.getLogger(__name__)


def _require_key():
    if not settings.ALCHEMY_API_KEY:
        raise ConfigError("Server Config Error: Missing Alchemy Key")


async def alchemy_get(client: httpx.AsyncClient, method: str, params: dict | list) -> dict:
    """GET an Alchemy NFT endpoint and return the decoded JSON body."""
    _require_key()
    try:
        resp = await client.get(f"{settings.alchemy_nft_url}/{method}", params=params)
        resp.raise_for_status()
        data = resp.json()
    except httpx.HTTPStatusError as e:
        # str(e) carries the request URL, which embeds the API key
        logger.error("Alchemy %s failed with HTTP %s", method, e.response.status_code)
        raise UpstreamError(f"Alchemy {method} failed") from e
    except httpx.HTTPError as e:
        logger.error("Alchemy %s failed: %s", method, type(e).__name__)
        raise UpstreamError(f"Alchemy {method} failed") from e
    except ValueError as e:
        raise UpstreamError(f"Malformed Alchemy {method} response") from e
    if not isinstance(data, dict):
        raise UpstreamError(f"Malformed Alchemy {method} response")
    return data


def _image_url(nft: dict) -> str | None:
    image = nft.get("image") or {}
    metadata = (nft.get("raw") or {}).get("metadata") or {}
    return (
        image.get("cachedUrl")
        or image.get("pngUrl")
        or image.get("originalUrl")
        or metadata.get("image")
    )


def parse_owned_nft(nft: dict) -> NFTAsset | None:
    """Normalize one Alchemy ownedNfts entry. Returns None when it has no image."""
    image = _image_url(nft)
    if not image:
        return None
    contract = nft.get("contract") or {}
    token_id = str(nft.get("tokenId", ""))
    return NFTAsset(
        token_id=token_id,
        name=nft.get("name") or contract.get("name") or f"Token #{token_id}",
        image=image,
        collection_name=contract.get("name") or "Unknown Collection",
        contract_address=contract.get("address", ""),
    )


async def list_assets(
    address: str,
    exclude_spam: bool = True,
    page_size: int = 50,
    client: httpx.AsyncClient | None = None,
) -> list[NFTAsset]:
    """List NFTs (with an image) owned by address. Only the first page is read."""
    if client is None:
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT) as own_client:
            return await list_assets(address, exclude_spam, page_size, own_client)

    params: list[tuple[str, str]] = [
        ("owner", address),
        ("pageSize", str(page_size)),
        ("withMetadata", "true"),
    ]
    if exclude_spam:
        params.append(("excludeFilters[]", "SPAM"))

    data = await alchemy_get(client, "getNFTsForOwner", params)
    assets = []
    for nft in data.get("ownedNfts") or []:
        asset = parse_owned_nft(nft)
        if asset:
            assets.append(asset)
    logger.info("Wallet %s: %d NFTs with images", address, len(assets))
    return assets


async def list_holders(
    contract: str,
    max_pages: int = 5,
    client: httpx.AsyncClient | None = None,
) -> list[str]:
    """Owner addresses for a contract, following pageKey for up to max_pages pages."""
    if client is None:
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT) as own_client:
            return await list_holders(contract, max_pages, own_client)

    holders: list[str] = []
    page_key = None
    for _ in range(max_pages):
        params = {"contractAddress": contract, "withTokenBalances": "false"}
        if page_key:
            params["pageKey"] = page_key
        data = await alchemy_get(client, "getOwnersForContract", params)
        holders.extend(o for o in data.get("owners") or [] if isinstance(o, str))
        page_key = data.get("pageKey")
        if not page_key:
            break
    else:
        if page_key:
            logger.warning("Holders for %s truncated at %d pages", contract, max_pages)
    return holders
