"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables (or a ``.env`` file).
"""

import re

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        description="Async SQLAlchemy connection string (postgresql+asyncpg://...)",
    )

    # Import pipeline
    import_pause_every: int = Field(
        default=5,
        description="Pause after every N committed rows",
        gt=0,
    )
    import_pause_seconds: float = Field(
        default=0.2,
        description="Length of the inter-row pause in seconds (0 disables pausing)",
        ge=0,
    )
    import_lookup_batch_size: int = Field(
        default=500,
        description="Maximum values per IN-clause in the existing-identity lookup",
        gt=0,
    )
    import_max_file_size_mb: int = Field(
        default=5,
        description="Maximum upload size for import files in megabytes",
        gt=0,
    )
    phone_country_code: str = Field(
        default="256",
        description="International dialing code (without +) used for phone normalization",
    )

    @field_validator("phone_country_code")
    @classmethod
    def validate_phone_country_code(cls, v: str) -> str:
        v = v.strip().lstrip("+")
        if not re.fullmatch(r"\d{1,3}", v):
            msg = "phone_country_code must be 1-3 digits"
            raise ValueError(msg)
        return v

    # Referral codes
    referral_code_prefix: str = Field(
        default="YWT",
        description="Prefix of generated referral codes",
        min_length=1,
    )
    referral_code_width: int = Field(
        default=5,
        description="Zero-padded width of the numeric part of referral codes",
        gt=0,
    )

    # Wallets
    wallet_currencies: str = Field(
        default="USD,UGX",
        description="Comma-separated currencies provisioned for each new profile",
    )

    @property
    def wallet_currency_list(self) -> list[str]:
        """Parse wallet currencies into an uppercase list."""
        if not self.wallet_currencies.strip():
            return []
        return [c.strip().upper() for c in self.wallet_currencies.split(",") if c.strip()]

    # Reports
    report_dir: str = Field(
        default="./reports",
        description="Directory for import report files",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )

    # API
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="API version prefix",
    )

    @property
    def import_max_file_size_bytes(self) -> int:
        """Upload size limit in bytes."""
        return self.import_max_file_size_mb * 1024 * 1024


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()  # type: ignore[call-arg]
