"""Farcaster identity lookup via the Neynar v2 API - maps a FID or username to wallets."""
import logging

import httpx

from app.core.config import settings
from app.core.errors import ConfigError, NotFoundError, UpstreamError
from app.models.schemas import Identity

logger = logging.getLogger(__name__)


def _parse_user(user: dict) -> Identity:
    try:
        return Identity(
            fid=user["fid"],
            username=user.get("username") or "",
            display_name=user.get("display_name") or "",
            pfp_url=user.get("pfp_url") or "",
            custody_address=user.get("custody_address"),
            verified_addresses=(user.get("verified_addresses") or {}).get("eth_addresses") or [],
        )
    except (KeyError, TypeError, ValueError) as e:
        raise UpstreamError(f"Malformed Neynar user payload: {e}") from e


async def _get(client: httpx.AsyncClient, path: str, params: dict) -> dict:
    try:
        resp = await client.get(
            f"{settings.NEYNAR_BASE_URL}{path}",
            params=params,
            headers={"accept": "application/json", "x-api-key": settings.NEYNAR_API_KEY},
        )
    except httpx.HTTPError as e:
        logger.error(f"Neynar request failed: {e}")
        raise UpstreamError("Failed to fetch user data") from e

    if resp.status_code == 404:
        raise NotFoundError("User not found on Farcaster")
    if resp.is_error:
        logger.error("Neynar error %s: %s", resp.status_code, resp.text[:200])
        raise UpstreamError("Failed to fetch user data")

    try:
        return resp.json()
    except ValueError as e:
        raise UpstreamError("Malformed Neynar response") from e


async def resolve_identity(
    fid: int | None = None,
    username: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> Identity:
    """Resolve a FID (preferred) or username to a Farcaster identity with its wallets."""
    if not settings.NEYNAR_API_KEY:
        raise ConfigError("Server Config Error: Missing Neynar Key")
    if fid is None and not (username or "").strip():
        raise ValueError("fid or username is required")

    if client is None:
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT) as own_client:
            return await resolve_identity(fid, username, own_client)

    if fid is not None:
        data = await _get(client, "/user/bulk", {"fids": str(fid)})
        users = data.get("users") or []
        if not users:
            raise NotFoundError("User not found on Farcaster")
        return _parse_user(users[0])

    data = await _get(client, "/user/by_username", {"username": username.strip().lstrip("@")})
    user = data.get("user")
    if not user:
        raise NotFoundError("User not found on Farcaster")
    return _parse_user(user)
