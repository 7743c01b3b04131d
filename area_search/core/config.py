import os
from pydantic import BaseModel

class Settings(BaseModel):
    # Basic
    ENV: str = os.getenv("ENV", "dev")
    CACHE_TTL_SECONDS: int = int(os.getenv("CACHE_TTL_SECONDS", "120"))

    # Listing store
    STORE_PROVIDER: str = os.getenv("STORE_PROVIDER", "memory")    # memory | http
    STORE_BASE_URL: str | None = os.getenv("STORE_BASE_URL")
    STORE_TIMEOUT_SECONDS: float = float(os.getenv("STORE_TIMEOUT_SECONDS", "10"))
    LISTINGS_PATH: str | None = os.getenv("LISTINGS_PATH")          # JSON file for the memory store
    STORE_MAX_RECORDS: int = int(os.getenv("STORE_MAX_RECORDS", "2000"))
    STORE_ACTIVE_ONLY: bool = os.getenv("STORE_ACTIVE_ONLY", "true").lower() == "true"

    # Canonical defaults
    DEFAULT_IMAGE_URL: str = os.getenv(
        "DEFAULT_IMAGE_URL",
        "https://images.unsplash.com/photo-1560518883-ce09059eeffa?w=400&h=300&fit=crop",
    )
    OWNER_ID: str = os.getenv("OWNER_ID", "system")
    OWNER_NAME: str = os.getenv("OWNER_NAME", "Property Owner")
    OWNER_EMAIL: str = os.getenv("OWNER_EMAIL", "owner@estateiq.ro")
    OWNER_PHONE: str = os.getenv("OWNER_PHONE", "+40 XXX XXX XXX")
    NEW_LISTING_DAYS: int = int(os.getenv("NEW_LISTING_DAYS", "30"))
    FEATURED_RECENT_DAYS: int = int(os.getenv("FEATURED_RECENT_DAYS", "7"))
    MAX_TAGS: int = int(os.getenv("MAX_TAGS", "10"))

    # Security
    API_KEY: str | None = os.getenv("API_KEY")
    RATE_LIMIT_RPM: int = int(os.getenv("RATE_LIMIT_RPM", "120"))

    # CORS
    ALLOW_ORIGINS: str = os.getenv("ALLOW_ORIGINS", "*")

    # Cache (rate limiting counters)
    USE_REDIS: bool = os.getenv("USE_REDIS", "false").lower() == "true"
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    # Metrics
    PROMETHEUS_ENABLED: bool = os.getenv("PROMETHEUS_ENABLED", "true").lower() == "true"

settings = Settings()
