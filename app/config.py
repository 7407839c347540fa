from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Zoho endpoints
    ZOHO_ACCOUNTS_URL: str = "https://accounts.zoho.com"
    ZOHO_DESK_URL: str = "https://desk.zoho.com"
    ZOHO_SCOPE: str = "Desk.tickets.ALL,Desk.settings.ALL"
    ZOHO_REQUEST_TIMEOUT: float = 30.0
    TOKEN_EXPIRY_SKEW_SECONDS: int = 60  # refresh a minute before Zoho says

    # Local JSON stores
    PROFILES_PATH: str | None = None
    TICKET_LOG_PATH: str | None = None

    # =================================================================
    # BULK JOB TIMING
    # =================================================================
    SLEEP_TICK_SECONDS: float = 0.1
    PAUSE_POLL_SECONDS: float = 0.5
    VERIFICATION_DELAY_SECONDS: float = 10.0
    SHUTDOWN_GRACE_SECONDS: float = 5.0

    CORS_ALLOWED_ORIGINS: list[str] = ["http://localhost:8080"]

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def profiles_path(self) -> Path:
        """Get profiles.json location with fallback next to the project root."""
        if self.PROFILES_PATH:
            return Path(self.PROFILES_PATH)
        return BASE_DIR / "profiles.json"

    def ticket_log_path(self) -> Path:
        """Get ticket-log.json location with fallback next to the project root."""
        if self.TICKET_LOG_PATH:
            return Path(self.TICKET_LOG_PATH)
        return BASE_DIR / "ticket-log.json"

    def token_url(self) -> str:
        return f"{self.ZOHO_ACCOUNTS_URL.rstrip('/')}/oauth/v2/token"


settings = Settings()
