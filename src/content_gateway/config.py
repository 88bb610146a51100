"""Gateway configuration.

Values are read from ``GATEWAY_``-prefixed environment variables, then from a
``.env`` file in the working directory, then fall back to the defaults below.
A module-level ``settings`` instance is the single source of truth; tests build
their own ``GatewaySettings`` instead of mutating it.

Example .env file::

    GATEWAY_MONGO_URI=mongodb://localhost:27017/?replicaSet=rs0
    GATEWAY_GOOGLE_API_KEY=...
    GATEWAY_FIREBASE_CREDENTIALS=/secrets/service-account.json
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GatewaySettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="GATEWAY_",
        case_sensitive=False,
    )

    # Persistence
    mongo_uri: Optional[str] = Field(
        default=None,
        description="MongoDB URI (replica set, transactions required). In-memory store when unset.",
    )
    mongo_db: str = Field(default="content_gateway")

    # Generative model
    google_api_key: Optional[str] = Field(default=None)
    text_model: str = Field(default="gemini-2.5-flash")
    image_model: str = Field(default="gemini-2.5-flash-image")

    # Identity provider
    firebase_credentials: Optional[Path] = Field(
        default=None,
        description="Service-account JSON; application-default credentials when unset.",
    )

    # Ledger / cache
    ledger_log_path: Path = Field(default=Path("logs/credit_ledger.log"))
    brand_cache_ttl_seconds: int = Field(default=300, ge=0)

    refund_on_failure: bool = Field(
        default=False,
        description="Give credits back when generation fails after the deduction.",
    )

    # Server
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)


settings = GatewaySettings()
