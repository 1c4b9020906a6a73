"""Configuration settings for the price hunter service."""

from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import Field
from pathlib import Path


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI (intent / facts / scoring / recommendation oracles)
    openai_api_key: Optional[str] = Field(
        default=None,
        description="OpenAI API key (oracles fall back to deterministic logic when unset)",
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        description="Model used for all oracle calls",
    )
    oracle_timeout_seconds: float = Field(
        default=12.0, description="Timeout for a single oracle call"
    )

    # Google Custom Search (listing discovery + reviews)
    google_cse_api_key: Optional[str] = Field(
        default=None,
        description="Google Custom Search JSON API key",
    )
    google_cse_cx: Optional[str] = Field(
        default=None,
        description="Programmable Search Engine id (cx)",
    )
    search_timeout_seconds: float = Field(
        default=9.0, description="Timeout for a web search call"
    )

    # Scraping
    scrape_timeout_seconds: float = Field(
        default=15.0, description="Timeout for a single page fetch"
    )
    adapter_timeout_seconds: float = Field(
        default=25.0, description="Hard timeout for one adapter's whole fetch"
    )
    render_enabled: bool = Field(
        default=False,
        description="Render short user-target pages with a headless browser",
    )

    # Result cache
    cache_enabled: bool = Field(default=True, description="Persist cached results to SQLite (in-memory otherwise)")
    cache_path: Path = Field(
        default=Path("data/cache.db"), description="SQLite cache path"
    )
    cache_namespace: str = Field(
        default="main", description="Logical cache instance name"
    )
    cache_ttl_minutes: int = Field(
        default=20, description="TTL for cached search results in minutes"
    )

    # API
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    environment: str = Field(
        default="development",
        description="Environment: 'development' or 'production'",
    )

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def has_oracle(self) -> bool:
        """Whether oracle credentials are configured."""
        return bool(self.openai_api_key)

    @property
    def has_web_search(self) -> bool:
        """Whether web search credentials are configured."""
        return bool(self.google_cse_api_key and self.google_cse_cx)


settings = Settings()
