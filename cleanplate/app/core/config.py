import logging
from functools import lru_cache
from typing import Dict, List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
]

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,image/apng,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "DNT": "1",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "max-age=0",
    "Referer": "https://www.google.com/",
}


class Settings(BaseSettings):
    scraper_timeout: float = Field(10.0, alias="SCRAPER_TIMEOUT")
    scraper_max_redirects: int = Field(5, alias="SCRAPER_MAX_REDIRECTS")
    scraper_min_delay: float = Field(2.0, alias="SCRAPER_MIN_DELAY")
    scraper_ssl_verify: bool = Field(True, alias="SCRAPER_SSL_VERIFY")
    scraper_user_agents: List[str] = Field(
        default_factory=lambda: list(DEFAULT_USER_AGENTS), alias="SCRAPER_USER_AGENTS"
    )
    scraper_headers: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_HEADERS), alias="SCRAPER_HEADERS"
    )
    scraper_cookies: str | None = Field(None, alias="SCRAPER_COOKIES")
    batch_pause_seconds: float = Field(5.0, alias="BATCH_PAUSE_SECONDS")
    filter_strictness: str = Field("balanced", alias="FILTER_STRICTNESS")
    confidence_debug: bool = Field(False, alias="CONFIDENCE_DEBUG")
    # Image candidate ranking
    image_max_candidates: int = Field(3, alias="IMAGE_MAX_CANDIDATES")
    image_min_score: int = Field(40, alias="IMAGE_MIN_SCORE")
    image_min_width: int = Field(200, alias="IMAGE_MIN_WIDTH")
    image_min_height: int = Field(200, alias="IMAGE_MIN_HEIGHT")
    # URL validation
    max_url_length: int = Field(2048, alias="MAX_URL_LENGTH")
    blocked_hosts: List[str] = Field(
        default_factory=lambda: ["localhost", "metadata.google.internal", "169.254.169.254"],
        alias="BLOCKED_HOSTS",
    )

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=False, extra="ignore", populate_by_name=True
    )


logger = logging.getLogger(__name__)


@lru_cache
def get_settings() -> Settings:
    try:
        settings = Settings()
    except PermissionError:
        logger.warning("Unable to read .env; continuing with environment variables only")
        settings = Settings(_env_file=None)
    return settings
