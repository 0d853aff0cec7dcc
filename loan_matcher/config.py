"""
Configuration management using Pydantic

This module provides application-wide configuration using Pydantic BaseSettings
with support for environment variables and type validation.
"""

from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """
    Application configuration settings.

    All settings can be overridden using environment variables.
    For example, LOAN_MATCHER_MAX_BATCH_SIZE will override max_batch_size.
    """

    # API Configuration
    api_host: str = Field(default="localhost", description="API server host")
    api_port: int = Field(default=8000, description="API server port")
    allowed_origins: List[str] = Field(
        default=["*"],
        description="CORS allowed origins"
    )

    # Matching Parameters
    max_batch_size: int = Field(
        default=10,
        ge=1,
        le=14,
        description="Maximum orders per maturity batch (partition count grows as Bell(n))"
    )
    rate_precision: int = Field(
        default=4,
        ge=0,
        description="Fractional digits kept for average rates and efficiency"
    )
    max_workers: int = Field(
        default=1,
        ge=1,
        description="Worker threads used to match maturity groups in parallel"
    )

    # Settlement Asset
    asset_symbol: str = Field(
        default="USDC",
        description="Symbol of the lent asset, used in diagnostics"
    )
    asset_decimals: int = Field(
        default=0,
        ge=0,
        description="Decimal places of the lent asset (0 renders raw units)"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_dir: Optional[str] = Field(
        default=None,
        description="Directory for log files (console only when unset)"
    )
    use_json_logs: bool = Field(
        default=False,
        description="Emit structured JSON logs"
    )

    class Config:
        env_prefix = "LOAN_MATCHER_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """
    Get the global settings instance.

    Returns:
        Settings instance
    """
    return settings
