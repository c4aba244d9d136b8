"""Application configuration via environment variables (pydantic-settings)."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Upstream API keys. Empty means "not configured"; services raise ConfigError at call time.
    NEYNAR_API_KEY: str = ""
    ALCHEMY_API_KEY: str = ""

    NEYNAR_BASE_URL: str = "https://api.neynar.com/v2/farcaster"
    ALCHEMY_NETWORK: str = "base-mainnet"
    HTTP_TIMEOUT: float = 10.0

    # Scanning
    SCAN_PAGE_SIZE: int = 50
    SCAN_EXCLUDE_SPAM: bool = True
    HOLDERS_MAX_PAGES: int = 5

    # Cache policies (seconds / entry high-water marks)
    SCAN_CACHE_TTL: int = 300
    PRICE_CACHE_TTL: int = 900
    HOLDERS_CACHE_TTL: int = 3600
    SCAN_CACHE_MAX_ENTRIES: int = 500
    PRICE_CACHE_MAX_ENTRIES: int = 1000
    HOLDERS_CACHE_MAX_ENTRIES: int = 1000

    # Defaults
    PROJECT_NAME: str = "Fiend Scanner"

    @property
    def alchemy_nft_url(self) -> str:
        return f"https://{self.ALCHEMY_NETWORK}.g.alchemy.com/nft/v3/{self.ALCHEMY_API_KEY}"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

@lru_cache
def get_settings():
    return Settings()

settings = get_settings()
