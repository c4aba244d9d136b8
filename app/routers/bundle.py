from fastapi import APIRouter, Query

from app.models.schemas import BundleOrderRequest, BundleOrderResponse
from app.services.listing_service import build_bundle_order, decode_order, encode_order

router = APIRouter(prefix="/api/bundle", tags=["bundle"])


@router.post("/order", response_model=BundleOrderResponse)
async def create_bundle_order(body: BundleOrderRequest):
    """Unsigned bundle order parameters plus a share-link token. ValueError -> 400."""
    order = build_bundle_order(
        seller=body.seller,
        nfts=[item.model_dump(by_alias=True) for item in body.nfts],
        amount=body.price,
        currency=body.currency,
    )
    return BundleOrderResponse(order=order, encoded=encode_order(order))


@router.get("/order/decode")
async def decode_bundle_order(encoded: str = Query(..., min_length=1)):
    return decode_order(encoded)
