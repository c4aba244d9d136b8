"""Pydantic schemas for identities, NFT scans, prices and bundle orders.

API responses use camelCase keys; Python code uses snake_case attributes.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Identity(BaseModel):
    fid: int
    username: str = ""
    display_name: str = ""
    pfp_url: str = ""
    custody_address: Optional[str] = None
    verified_addresses: list[str] = Field(default_factory=list)

    @property
    def addresses(self) -> list[str]:
        """Custody + verified wallets, de-duplicated case-insensitively, order kept."""
        seen: set[str] = set()
        wallets = []
        for address in [self.custody_address, *self.verified_addresses]:
            if not address or address.lower() in seen:
                continue
            seen.add(address.lower())
            wallets.append(address)
        return wallets

    def is_custody(self, address: str) -> bool:
        return bool(self.custody_address) and address.lower() == self.custody_address.lower()


class NFTAsset(CamelModel):
    token_id: str
    name: str
    image: str
    collection_name: str
    contract_address: str
    is_custody: bool = False
    floor_price: float = 0.0


class FloorPrice(BaseModel):
    """Oracle result. price=None means no source reported one, which is not the same as 0."""

    price: Optional[float] = None
    source: Optional[str] = None

    @property
    def known(self) -> bool:
        return self.price is not None

    @property
    def value_or_zero(self) -> float:
        return self.price if self.price is not None else 0.0


class FloorPriceResponse(BaseModel):
    contract: str
    price: Optional[float] = None
    source: Optional[str] = None


class ScanResult(CamelModel):
    user: str
    fid: int
    display_name: str
    pfp: str
    wallet_count: int
    total_found: int
    total_value_eth: float
    nfts: list[NFTAsset]


class HoldersResult(CamelModel):
    contract: str
    holder_count: int
    holders: list[str]


# --- Bundle listings ---

class BundleItem(CamelModel):
    contract_address: str
    token_id: str
    name: Optional[str] = None
    image: Optional[str] = None


class BundleOrderRequest(CamelModel):
    seller: str
    nfts: list[BundleItem] = Field(..., min_length=1)
    price: str = Field(..., description="Amount in whole units, e.g. '0.05' or '1.5K'")
    currency: Literal["ETH", "USDC"] = "ETH"


class BundleOrderResponse(BaseModel):
    order: dict
    encoded: str
