"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Server
    host: str = "localhost"
    port: int = 3000
    request_timeout_ms: int = 240000
    cors_origins: list[str] = ["*"]
    log_level: str = "INFO"

    # Ledger network
    channel_name: str = "mychannel"
    chaincode_name: str = "ngo"
    peers: list[str] = ["peer0.org1.example.com"]
    # Empty means the in-memory ledger network is used
    ledger_url: str = ""
    ledger_timeout_ms: int = 30000
    # Donation records loaded into the in-memory ledger at startup
    demo_donations: list[dict[str, str]] = [
        {
            "donationId": "demo-donation-1",
            "ngoRegistrationNumber": "1111",
            "donorUserName": "edge",
            "donationAmount": "100",
            "donationDate": "2018-09-20T12:41:59.582Z",
        }
    ]

    # Push socket
    ws_greeting: str = "something"

    # Background spend generator
    generator_enabled: bool = True
    generator_min_delay_ms: int = 5000
    generator_max_delay_ms: int = 20000
    generator_min_amount: int = 1
    generator_max_amount: int = 100
    spend_description: str = "Peter Pipers Poulty Portions for Pets"
    spend_date: str = "2018-09-20T12:41:59.582Z"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
