from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./rentalhub.db"
    FRONTEND_ORIGINS: List[str] = ["http://localhost:3000"]
    LOG_LEVEL: str = "INFO"

    # quotation holds lapse after this unless the caller supplies expires_at
    QUOTATION_HOLD_TTL_SECONDS: int = 1800
    EXPIRY_SWEEP_INTERVAL_SECONDS: int = 30
    ENABLE_EXPIRY_SWEEP: bool = True

    RESERVATION_LOCK_TIMEOUT_SECONDS: float = 10.0
    RESERVATION_LOCKS_DIR: Optional[str] = None  # defaults to <tempdir>/rentalhub_locks

    AVAILABILITY_SEARCH_DAYS: int = 90

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
