"""Collection floor prices from the Alchemy price oracle.

Price is enrichment: a failed lookup degrades to "no price known" and never
fails the surrounding scan. Marketplace sources are checked in a fixed
order and never averaged.
"""
import logging

import httpx

from app.core.cache import Caches, derive_key
from app.core.config import settings
from app.core.errors import ConfigError
from app.models.schemas import FloorPrice
from app.services.asset_service import alchemy_get

logger = logging.getLogger(__name__)

# Primary first; later sources only if every earlier one is absent.
PRICE_SOURCES = ("openSea", "looksRare")


def _source_price(entry) -> float | None:
    if not isinstance(entry, dict) or entry.get("error"):
        return None
    value = entry.get("floorPrice")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value < 0:
        return None
    return float(value)


def pick_floor_price(data: dict) -> FloorPrice:
    """Apply source precedence to a getFloorPrice payload."""
    for source in PRICE_SOURCES:
        price = _source_price(data.get(source))
        if price is not None:
            return FloorPrice(price=price, source=source)
    return FloorPrice()


async def fetch_floor_price(contract: str, client: httpx.AsyncClient | None = None) -> FloorPrice:
    """Query the oracle directly. Raises on upstream failure."""
    if client is None:
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT) as own_client:
            return await fetch_floor_price(contract, own_client)
    data = await alchemy_get(client, "getFloorPrice", {"contractAddress": contract})
    return pick_floor_price(data)


async def get_floor_price(
    contract: str,
    caches: Caches,
    client: httpx.AsyncClient | None = None,
) -> FloorPrice:
    """Cached floor price for a contract; oracle failures yield FloorPrice(price=None).

    A missing API key is a configuration error and propagates.
    """
    key = derive_key("floor", contract)
    try:
        return await caches.prices.fetch_through(key, lambda: fetch_floor_price(contract, client))
    except ConfigError:
        raise
    except Exception as e:
        logger.warning(f"Floor price unavailable for {contract}: {e}")
        return FloorPrice()
