from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    database_url: str = "sqlite:///./gamesync.db"
    secret_key: str = "dev-secret-key-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    environment: str = "development"
    api_cors_origins: str = "http://localhost:3000"

    # Shared secret for the timer-driven /cron/sync entry point
    cron_secret: str | None = None

    # SWUSH partner API
    swush_api_base_url: str | None = None
    swush_api_key: str | None = None
    swush_timeout_seconds: float = 60.0
    swush_page_delay_seconds: float = 1.1
    game_base_url: str = "https://manager.aftonbladet.se/se"

    # Scheduled sync
    run_sync_loop: bool = False
    scheduled_sync_enabled: bool = True
    scheduled_sync_period_minutes: int = 15
    max_games_per_run: int | None = None
    batch_timeout_seconds: float = 270.0
    sync_pacing_delay_seconds: float = 1.1
    manual_sync_cooldown_minutes: int = 5

    # Daily API budget (upstream allows 100/day; keep headroom for manual syncs)
    daily_budget_limit: int = 90
    budget_warn_threshold: int = 15
    budget_reset_timezone: str = "UTC"
    budget_unknown_users_estimate: int = 5000

    # Critical sync windows
    round_start_window_minutes: int = 120
    trade_deadline_window_minutes: int = 120
    round_ended_window_minutes: int = 60

    @property
    def cors_origins(self) -> list[str]:
        raw = self.api_cors_origins.strip()
        if not raw:
            return []
        return [origin.strip() for origin in raw.split(",") if origin.strip()]

    @property
    def resolved_database_url(self) -> str:
        return self.database_url.replace("postgres://", "postgresql://", 1)

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
