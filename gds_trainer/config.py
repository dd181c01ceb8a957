# gds_trainer/config.py
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # App
    APP_ENV: Literal["dev", "prod", "staging"] = "dev"
    TZ: str = "America/Argentina/Buenos_Aires"

    # Terminal
    OFFICE_ID: str = "UTN5168476"
    PAGE_SIZE: int = 5
    MAX_COMMAND_LENGTH: int = 256
    TICKET_TIME_LIMIT: str = "1200"  # HHMM stamped on ET/ER when no TK element exists

    # Reference data (seed for the in-memory flight repository)
    FLIGHTS_DATA_PATH: str = "data/flights.json"

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_TTL_SECONDS: int = 0  # 0 keeps finalized PNRs forever
    SESSION_TTL_SECONDS: int = 1800  # 30 minutes idle terminal session

    # Rate limiting on the command endpoint
    RATE_LIMIT_PER_MINUTE: int = 120

    # read .env and ignore any extra keys so this doesn't break again
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

settings = Settings()
