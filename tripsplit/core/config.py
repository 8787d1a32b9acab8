from functools import lru_cache
from pathlib import Path
from typing import Optional
from pydantic import BaseSettings, validator


class Settings(BaseSettings):
    """Application settings loaded from environment with defaults.

    Environment variable mapping follows pydantic's rules (e.g., APP_NAME, DEBUG, DATA_DIR, DB_FILENAME, DEFAULT_CURRENCY).
    """

    # Basic app metadata
    app_name: str = "Trip Expense Splitter"
    debug: bool = False
    version: str = "0.1.0"

    # Data & persistence
    data_dir: Path = Path("data")
    db_filename: str = "tripsplit.sqlite3"
    db_path: Optional[Path] = None  # derived if not provided

    # Ledger defaults
    default_currency: str = "USD"

    # Listing / pagination
    default_page_size: int = 20
    max_page_size: int = 100

    # Header carrying the authenticated member id (set by the upstream auth layer)
    member_header: str = "X-Member-Id"

    class Config:
        env_file = ".env"
        case_sensitive = False

    @validator("default_currency")
    def _currency_code(cls, v: str) -> str:
        v = v.strip().upper()
        if len(v) != 3:
            raise ValueError("default_currency must be a 3-letter code")
        return v

    def init_post_load(self) -> None:
        """Finalize derived fields and ensure directories exist."""
        if self.db_path is None:
            self.db_path = self.data_dir / self.db_filename
        # Ensure persistence directory exists
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        if not (1 <= self.default_page_size <= self.max_page_size):
            raise ValueError(
                f"default_page_size must be between 1 and max_page_size ({self.max_page_size})"
            )


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
