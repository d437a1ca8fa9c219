from pydantic_settings import BaseSettings
from functools import lru_cache


TESTNET_PASSPHRASE = "Test SDF Network ; September 2015"
MAINNET_PASSPHRASE = "Public Global Stellar Network ; September 2015"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    horizon_url: str = "https://horizon-testnet.stellar.org"
    stellar_network: str = "testnet"
    payment_contract_id: str = ""
    anthropic_api_key: str = ""
    parser_backend: str = "pattern"
    llm_model: str = "claude-sonnet-4-20250514"
    db_path: str = "agentpay.json"
    allowed_origins: str = "http://localhost:3000,http://localhost:5173"
    public_base_url: str = "http://localhost:5173"
    gateway_timeout_seconds: float = 30.0
    swap_fee_rate: float = 0.003
    log_level: str = "INFO"

    @property
    def allowed_origins_list(self) -> list[str]:
        """Parse comma-separated origins into a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def network_passphrase(self) -> str:
        """Stellar network passphrase for the configured network."""
        if self.stellar_network == "mainnet":
            return MAINNET_PASSPHRASE
        return TESTNET_PASSPHRASE

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
