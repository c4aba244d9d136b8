"""Bundle sale listings: unsigned Seaport order parameters on Base.

The seller's wallet signs the returned parameters client-side; signing,
approvals and fulfilment are not handled here.
"""
import base64
import binascii
import json
import re
import math
import secrets
import time
from decimal import Decimal, InvalidOperation, localcontext

SEAPORT_ADDRESS = "0x0000000000000068F116a894984e2DB1123eB395"  # Seaport v1.6
BASE_CHAIN_ID = 8453
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
ZERO_BYTES32 = "0x" + "00" * 32
ORDER_DURATION_SECONDS = 30 * 24 * 60 * 60

# Seaport item types
ITEM_NATIVE = 0
ITEM_ERC20 = 1
ITEM_ERC721 = 2

ORDER_FULL_OPEN = 0
MAX_UINT256 = 2**256 - 1

CURRENCIES = {
    "ETH": {"token": ZERO_ADDRESS, "decimals": 18, "item_type": ITEM_NATIVE},
    "USDC": {"token": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913", "decimals": 6, "item_type": ITEM_ERC20},
}

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_TOKEN_ID_RE = re.compile(r"[0-9]+")
# wide enough for any uint256 amount, so arithmetic below never rounds
_PRECISION = 100
_SUFFIXES = {"K": Decimal(1_000), "M": Decimal(1_000_000)}


def is_address(value: str) -> bool:
    return bool(value) and bool(_ADDRESS_RE.match(value))


def _to_decimal(value: str) -> Decimal:
    try:
        number = Decimal(value)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Invalid price: {value!r}") from e
    if not number.is_finite():
        raise ValueError(f"Invalid price: {value!r}")
    if number and not -_PRECISION < number.adjusted() < _PRECISION:
        raise ValueError(f"Price out of range: {value!r}")
    return number


def parse_price(text: str) -> str:
    """'1.5K' -> '1500', '2m' -> '2000000', '1,000' -> '1000'."""
    cleaned = text.strip().upper().replace(",", "")
    multiplier = Decimal(1)
    if cleaned and cleaned[-1] in _SUFFIXES:
        multiplier = _SUFFIXES[cleaned[-1]]
        cleaned = cleaned[:-1]
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        number = _to_decimal(cleaned) * multiplier
        return format(number.normalize(), "f")


def format_price(price: str, decimals: int) -> str:
    """Compact display form: 1.5M, 2.0K, or fixed decimals for small amounts."""
    try:
        num = float(price)
    except (TypeError, ValueError):
        return "0"
    if not math.isfinite(num):
        return "0"
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    if num >= 1_000:
        return f"{num / 1_000:.1f}K"
    return f"{num:.{4 if decimals > 6 else 2}f}"


def price_to_base_units(amount: str, currency: str = "ETH") -> str:
    """Whole-unit amount to the token's smallest unit (wei for ETH, 6 decimals for USDC)."""
    if currency not in CURRENCIES:
        raise ValueError(f"Unsupported currency: {currency}")
    decimals = CURRENCIES[currency]["decimals"]
    number = _to_decimal(parse_price(amount))
    if number <= 0:
        raise ValueError("Price must be greater than zero")
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        scaled = number.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{currency} supports at most {decimals} decimals")
    units = int(scaled)
    if units > MAX_UINT256:
        raise ValueError("Price exceeds the uint256 range")
    return str(units)


def build_bundle_order(
    seller: str,
    nfts: list[dict],
    amount: str,
    currency: str = "ETH",
    now: int | None = None,
    salt: str | None = None,
) -> dict:
    """Offer every NFT as one ERC721 bundle in exchange for amount paid to the seller.

    nfts items need ``contractAddress`` and ``tokenId``.
    """
    if not is_address(seller):
        raise ValueError(f"Invalid seller address: {seller}")
    if not nfts:
        raise ValueError("Bundle must contain at least one NFT")

    offer = []
    seen: set[tuple[str, str]] = set()
    for nft in nfts:
        contract = nft.get("contractAddress", "")
        token_id = str(nft.get("tokenId", "")).strip()
        if not is_address(contract):
            raise ValueError(f"Invalid contract address: {contract}")
        if not _TOKEN_ID_RE.fullmatch(token_id) or int(token_id) > MAX_UINT256:
            raise ValueError(f"Invalid token id: {token_id!r}")
        token_id = str(int(token_id))
        ident = (contract.lower(), token_id)
        if ident in seen:
            raise ValueError(f"Duplicate NFT in bundle: {contract} #{token_id}")
        seen.add(ident)
        offer.append({
            "itemType": ITEM_ERC721,
            "token": contract,
            "identifierOrCriteria": token_id,
            "startAmount": "1",
            "endAmount": "1",
        })

    price = price_to_base_units(amount, currency)
    pay = CURRENCIES[currency]
    consideration = [{
        "itemType": pay["item_type"],
        "token": pay["token"],
        "identifierOrCriteria": "0",
        "startAmount": price,
        "endAmount": price,
        "recipient": seller,
    }]

    start = int(time.time()) if now is None else int(now)
    return {
        "chainId": BASE_CHAIN_ID,
        "seaport": SEAPORT_ADDRESS,
        "currency": currency,
        "displayPrice": f"{format_price(parse_price(amount), pay['decimals'])} {currency}",
        "parameters": {
            "offerer": seller,
            "zone": ZERO_ADDRESS,
            "offer": offer,
            "consideration": consideration,
            "orderType": ORDER_FULL_OPEN,
            "startTime": str(start),
            "endTime": str(start + ORDER_DURATION_SECONDS),
            "zoneHash": ZERO_BYTES32,
            "salt": salt or "0x" + secrets.token_hex(32),
            "conduitKey": ZERO_BYTES32,
            "totalOriginalConsiderationItems": len(consideration),
        },
    }


def encode_order(order: dict) -> str:
    """URL-safe token for share links."""
    raw = json.dumps(order, separators=(",", ":"), sort_keys=True).encode()
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def decode_order(encoded: str) -> dict:
    padded = encoded + "=" * (-len(encoded) % 4)
    try:
        order = json.loads(base64.urlsafe_b64decode(padded.encode()))
    except (binascii.Error, ValueError) as e:
        raise ValueError("Invalid encoded order") from e
    if not isinstance(order, dict):
        raise ValueError("Invalid encoded order")
    return order
