import logging

from fastapi import APIRouter, Depends, Query, Request

from app.core.cache import Caches
from app.models.schemas import FloorPriceResponse, HoldersResult, ScanResult
from app.services.price_service import get_floor_price
from app.services.scan_service import collection_holders, scan_user

router = APIRouter(prefix="/api", tags=["scan"])
logger = logging.getLogger(__name__)


def get_caches(request: Request) -> Caches:
    return request.app.state.caches


@router.get("/scan-fiends", response_model=ScanResult)
async def scan_fiends(
    fid: int | None = Query(None, ge=1),
    username: str | None = Query(None),
    caches: Caches = Depends(get_caches),
):
    """NFTs across every wallet linked to a Farcaster user, with floor prices."""
    return await scan_user(caches, fid=fid, username=username)


@router.get("/holders", response_model=HoldersResult)
async def holders(
    contract: str | None = Query(None),
    caches: Caches = Depends(get_caches),
):
    return await collection_holders(contract or "", caches)


@router.get("/floor-price", response_model=FloorPriceResponse)
async def floor_price(
    contract: str | None = Query(None),
    caches: Caches = Depends(get_caches),
):
    price = await get_floor_price(contract or "", caches)
    return FloorPriceResponse(contract=(contract or "").lower(), price=price.price, source=price.source)
