from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Runtime ---
    ENV: str = "dev"  # dev|prod
    SWISH_DB_URL: str = "sqlite+aiosqlite:///./goswish.db"

    # --- Minimal auth for debug/admin routes ---
    # Send: X-API-Key: <key>
    API_KEY: str | None = None

    # --- Marketplace economics (the "app" settings row overrides these) ---
    CLEANER_EARNINGS_RATE: float = 0.90
    DEFAULT_SERVICE_RADIUS_MI: float = 15.0

    # --- Matching ---
    BROADCAST_TOP_K: int = 15
    LOW_SUPPLY_THRESHOLD: int = 5
    RADIUS_EXPANSION_STEP_MI: float = 5.0

    # Match tier labels on offers: score > PREMIER -> "Premier", > HIGHLY -> "Highly Recommended"
    MATCH_TIER_PREMIER: float = 100.0
    MATCH_TIER_HIGHLY_RECOMMENDED: float = 75.0

    # When True the claim CAS also requires status == placed (cancelled bookings can't be claimed).
    CLAIM_REQUIRE_PLACED_STATUS: bool = False

    # --- Scheduler tuning ---
    SWEEP_INTERVAL_MINUTES: int = 10
    SWEEP_MAX_EXPANSIONS: int = 2
    SCHED_DISPATCH_INTERVAL_MINUTES: int = 5
    SCHED_DISPATCH_BATCH_SIZE: int = 50

    # --- Outbox delivery ---
    OUTBOX_MAX_ATTEMPTS: int = 10
    OUTBOX_WEBHOOK_RPS: float = 2.0
    OUTBOX_BACKOFF_BASE_SECONDS: float = 5.0
    OUTBOX_BACKOFF_CAP_SECONDS: float = 3600.0  # 1 hour cap
    WEBHOOK_TIMEOUT_S: int = 20


settings = Settings()
