"""Configuration management via environment variables.

Reads from .env file (via pydantic-settings) with sensible defaults.
All values can be overridden via environment variables.

Required for listing:
    R2_ACCOUNT_ID, R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY  - R2 credentials
    R2_BUCKET           - Bucket holding the report files
    R2_PUBLIC_BASE_URL  - Public base URL that serves bucket objects

Optional:
    LISTING_CACHE_TTL  - Seconds to reuse a raw listing (0 disables)
    PORT               - Server port
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Cloudflare R2 (S3-compatible) credentials
    r2_account_id: str = ""
    r2_access_key_id: str = ""
    r2_secret_access_key: str = ""
    r2_bucket: str = ""
    r2_public_base_url: str = ""

    # Morning briefs sit at the bucket root under this prefix
    brief_prefix: str = "廷豐金融科技晨報_"

    # Store listing limits (R2/S3 cap a single call at 1000 keys)
    list_max_keys: int = 1000
    list_max_pages: int = 100

    default_months_per_page: int = 6

    # Raw listing reuse window in seconds, 0 disables
    listing_cache_ttl: float = 60.0

    port: int = 8877

    # Strip whitespace from string fields - the .env file often has
    # trailing spaces that break credentials and URLs
    @field_validator(
        "r2_account_id",
        "r2_access_key_id",
        "r2_secret_access_key",
        "r2_bucket",
        "r2_public_base_url",
        mode="before",
    )
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip().strip('"').strip("'").strip()
        return v

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    def require(self, field: str) -> str:
        """Return a configured value or fail with the env var name."""
        value = getattr(self, field)
        if not value:
            raise ValueError(f"Missing env {field.upper()}")
        return value


_config: Settings | None = None


def get_config() -> Settings:
    """Get or create the shared Settings singleton."""
    global _config
    if _config is None:
        _config = Settings()
    return _config
