"""Environment-based configuration."""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass

from sqlalchemy.engine import URL


def resolve_database_url() -> str:
    """Resolve DB connection string.

    Priority:
      1) DATABASE_URL (explicit)
      2) Build from PG* env vars (common Postgres convention)
      3) Fallback to local sqlite
    """

    explicit = os.getenv("DATABASE_URL")
    if explicit:
        return explicit

    host = os.getenv("PGHOST")
    user = os.getenv("PGUSER")
    database = os.getenv("PGDATABASE")
    port_raw = os.getenv("PGPORT")

    if host and user and database:
        password = os.getenv("PGPASSWORD")
        sslmode = os.getenv("PGSSLMODE", "require")

        try:
            port = int(port_raw) if port_raw else 5432
        except ValueError:
            port = 5432

        query = {"sslmode": sslmode} if sslmode else {}
        url = URL.create(
            drivername="postgresql+psycopg2",
            username=user,
            password=password,
            host=host,
            port=port,
            database=database,
            query=query,
        )
        return str(url)

    return "sqlite:///./double_draw.db"


def resolve_input_signer_seed(secret_key: str) -> str:
    """Seed (hex, 32 bytes) for the key that signs encrypted-input proofs.

    Falls back to a digest of SECRET_KEY so local runs need no extra setup.
    """

    explicit = os.getenv("INPUT_SIGNER_SEED")
    if explicit:
        return explicit.strip().removeprefix("0x")
    return hashlib.sha256(f"input-signer:{secret_key}".encode()).hexdigest()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class BaseConfig:
    """Base configuration shared by all environments."""

    APP_ENV: str = os.getenv("APP_ENV", "development")
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret")
    DATABASE_URL: str = resolve_database_url()
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Lottery
    CONTRACT_ADDRESS: str = os.getenv(
        "CONTRACT_ADDRESS", "0x5fbdb2315678afecb367f032d93f642f64180aa3"
    ).lower()
    LOTTERY_OWNER: str = os.getenv(
        "LOTTERY_OWNER", "0xf39fd6e51aad88f6f4ce6ab8827279cfffb92266"
    ).lower()
    TICKET_PRICE_WEI: int = _int_env("TICKET_PRICE_WEI", 10**15)  # 0.001 ether

    # Mock coprocessor / relayer
    INPUT_SIGNER_SEED: str = resolve_input_signer_seed(SECRET_KEY)
    DECRYPT_MAX_DURATION_DAYS: int = _int_env("DECRYPT_MAX_DURATION_DAYS", 365)

    # Signed requests older (or newer) than this are refused
    REQUEST_MAX_AGE_SECONDS: int = _int_env("REQUEST_MAX_AGE_SECONDS", 300)


@dataclass(frozen=True)
class DevelopmentConfig(BaseConfig):
    """Development configuration."""

    DEBUG: bool = True


@dataclass(frozen=True)
class ProductionConfig(BaseConfig):
    """Production configuration."""

    DEBUG: bool = False


@dataclass(frozen=True)
class TestingConfig(BaseConfig):
    """Test configuration (in-memory database)."""

    DEBUG: bool = False
    TESTING: bool = True
    DATABASE_URL: str = "sqlite://"


def get_config() -> type[BaseConfig]:
    """Resolve configuration class based on APP_ENV."""

    env = os.getenv("APP_ENV", "development").lower().strip()
    if env == "production":
        return ProductionConfig
    if env == "testing":
        return TestingConfig
    return DevelopmentConfig
