from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = ""

    # Chain data (Covalent)
    COVALENT_API_KEY: str = ""
    COVALENT_BASE_URL: str = "https://api.covalenthq.com/v1"

    # Farcaster (Neynar)
    NEYNAR_API_KEY: str = ""
    NEYNAR_BASE_URL: str = "https://api.neynar.com/v2"
    NEYNAR_SIGNER_UUID: str = ""

    # APIs
    ANTHROPIC_API_KEY: str = ""
    CLAUDE_MODEL: str = "claude-sonnet-4-20250514"

    # Radar poller
    RADAR_CHAIN_ID: int = 8453  # Base mainnet
    RADAR_CHAIN_NAME: str = "base"
    RADAR_TX_PAGE_SIZE: int = 10
    RADAR_COLD_START_PAGE_SIZE: int = 10
    RADAR_POLL_INTERVAL: int = 300
    RADAR_SCHEDULER_ENABLED: bool = False
    RADAR_MAX_CONCURRENCY: int = 5
    RADAR_HTTP_TIMEOUT: float = 10.0
    RADAR_COMPOSE_TIMEOUT: float = 15.0
    RADAR_SUBSCRIPTION_TIMEOUT: float = 60.0
    RADAR_SWEEP_DEADLINE: float = 240.0

    # Application
    APP_URL: str = ""
    CRON_SECRET: str = ""
    API_SECRET_KEY: str = "dev-secret-key"
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
