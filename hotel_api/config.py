"""Application configuration pulled from environment variables via pydantic."""
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger, mask_secret_url
logger = get_tagged_logger(__name__, tag="config")

PLACEHOLDER_VALUES = frozenset({"", "PLACEHOLDER", "placeholder"})


class Settings(BaseSettings):
    """Environment-driven configuration for the hotel data API."""
    model_config = SettingsConfigDict(extra="ignore")

    # Upstream origin; per-dataset URLs win over API_BASE_URL + "/<key>"
    api_base_url: str | None = None
    config_upstream_url: str | None = None
    rooms_upstream_url: str | None = None
    tours_upstream_url: str | None = None
    gastronomy_upstream_url: str | None = None
    destinations_upstream_url: str | None = None

    # Local snapshots
    data_dir: Path = Path("data")
    snapshot_read_only: bool = False
    vercel: str | None = None
    netlify: str | None = None

    # Loader
    fetch_timeout_seconds: float = 5.0
    cache_freshness_seconds: int = 24 * 60 * 60

    # Admin
    cache_private_key: str | None = None

    # Error deduplication
    error_dedup_ttl_seconds: int = 300
    error_cache_max_entries: int = 100

    # Notification channels
    notify_max_retries: int = 3
    notify_backoff_base_seconds: float = 1.0
    notify_timeout_seconds: float = 10.0
    mailgun_api_key: str | None = None
    mailgun_domain: str | None = None
    admin_email: str | None = None
    sender_email: str = "no-reply@hotelensuenos.com"
    mailgun_enabled: bool = True
    mailgun_critical_only: bool = False
    telegram_bot_token: str | None = None
    telegram_chat_id: str | None = None
    telegram_enabled: bool = True
    telegram_critical_only: bool = True

    debug: bool = False
    status_check_interval_seconds: int = 300
    log_level: str = "INFO"

    @field_validator(
        "api_base_url",
        "config_upstream_url",
        "rooms_upstream_url",
        "tours_upstream_url",
        "gastronomy_upstream_url",
        "destinations_upstream_url",
        mode="after",
    )
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        """Normalize base URLs to avoid double slashes; blank means unset."""
        if v is None or not v.strip():
            return None
        return v.strip().rstrip("/")

    @property
    def snapshots_read_only(self) -> bool:
        """True on deployment targets with an immutable filesystem."""
        return bool(self.snapshot_read_only or self.vercel or self.netlify)

    def upstream_url(self, key: str) -> str | None:
        """Return the upstream URL for a dataset key, or None when unconfigured."""
        explicit = getattr(self, f"{key}_upstream_url", None)
        if explicit:
            return explicit
        if self.api_base_url:
            return f"{self.api_base_url}/{key}"
        return None

    def snapshot_path(self, key: str) -> Path:
        """Return the local snapshot file for a dataset key."""
        return self.data_dir / f"{key}.json"


def is_placeholder(value: str | None) -> bool:
    """True when a credential is absent or still a template placeholder."""
    return value is None or value.strip() in PLACEHOLDER_VALUES


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    dumped = settings.model_dump(exclude={"cache_private_key", "mailgun_api_key", "telegram_bot_token"})
    if settings.api_base_url:
        dumped["api_base_url"] = mask_secret_url(settings.api_base_url)
    logger.debug(f"Loaded settings: {dumped}")
