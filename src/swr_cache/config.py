import os
from dataclasses import dataclass
from functools import lru_cache

import redis.asyncio as redis
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Remote API
    api_base_url: str = os.getenv("API_BASE_URL", "http://localhost:3333")
    api_timeout: float = float(os.getenv("API_TIMEOUT", "30"))
    api_token: str | None = os.getenv("API_TOKEN")

    # Cache
    revalidate_interval: float = float(os.getenv("REVALIDATE_INTERVAL", "360"))  # 6 minutes
    cache_max_entries: int = int(os.getenv("CACHE_MAX_ENTRIES", "0"))  # 0 = unbounded

    # Mirror
    mirror_backend: str = os.getenv("MIRROR_BACKEND", "redis")
    mirror_namespace: str = os.getenv("MIRROR_NAMESPACE", "@Logen")
    mirror_ttl: int = int(os.getenv("MIRROR_TTL", "0"))  # 0 = no expiry
    mirror_restore: bool = os.getenv("MIRROR_RESTORE", "true").lower() == "true"

    # Redis
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")

    # Keys kept subscribed by the inspection service
    watch_keys: str = os.getenv("WATCH_KEYS", "ops")

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Inspection API
    inspect_host: str = os.getenv("INSPECT_HOST", "127.0.0.1")
    inspect_port: int = int(os.getenv("INSPECT_PORT", "8000"))

    @property
    def uses_redis_mirror(self) -> bool:
        """Check if the mirror is backed by Redis.

        Returns:
            True if MIRROR_BACKEND is redis, False for the in-memory mirror
        """
        return self.mirror_backend.lower() == "redis"

    @property
    def watch_key_list(self) -> list[str]:
        """Parse WATCH_KEYS (comma separated) into a list of resource keys."""
        return [key.strip() for key in self.watch_keys.split(",") if key.strip()]

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.revalidate_interval <= 0:
            raise ValueError("REVALIDATE_INTERVAL must be a positive number of seconds")

        if self.cache_max_entries < 0:
            raise ValueError("CACHE_MAX_ENTRIES must be >= 0 (0 disables eviction)")

        if self.mirror_backend.lower() not in ("redis", "memory"):
            raise ValueError(
                f"MIRROR_BACKEND must be one of ['redis', 'memory'], got {self.mirror_backend}"
            )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def get_redis_client() -> redis.Redis:
    """Create an async Redis client instance."""
    return redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=False,
    )
