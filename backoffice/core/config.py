"""Environment driven configuration for the back-office service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

_FALSE_VALUES = {"0", "false", "False", "no"}


@dataclass(frozen=True, slots=True)
class DatabaseSettings:
    """Connection details for the transactional database."""

    driver: str = "mysql+pymysql"
    host: str = "127.0.0.1"
    port: int = 3306
    user: str = "backoffice"
    password: str = "backoffice"
    name: str = "backoffice"
    url_override: str | None = None

    @property
    def sqlalchemy_url(self) -> str:
        """Build a SQLAlchemy compatible URL."""

        if self.url_override:
            return self.url_override
        if self.password:
            credentials = f"{self.user}:{self.password}"
        else:
            credentials = self.user
        return f"{self.driver}://{credentials}@{self.host}:{self.port}/{self.name}"

    @property
    def masked_url(self) -> str:
        if self.url_override:
            return self.url_override.split("@")[-1]
        pwd = "***" if self.password else ""
        return f"{self.driver}://{self.user}:{pwd}@{self.host}:{self.port}/{self.name}"


@dataclass(frozen=True, slots=True)
class AuthSettings:
    """Session token settings."""

    secret_key: str = "change-me"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 120
    cookie_name: str = "access_token"
    enabled: bool = True


@dataclass(frozen=True, slots=True)
class CronSettings:
    """Shared secret expected from the external scheduler."""

    secret: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.secret)


@dataclass(frozen=True, slots=True)
class BillingSettings:
    """Defaults applied to generated invoices and ledger rows."""

    currency: str = "EUR"
    invoice_prefix: str = "INV"
    proposal_prefix: str = "PROP"


@dataclass(frozen=True, slots=True)
class Settings:
    """Top-level application configuration container."""

    database: DatabaseSettings
    auth: AuthSettings
    cron: CronSettings
    billing: BillingSettings
    sqlalchemy_echo: bool = False
    log_level: str = "INFO"
    log_dir: Path | None = Path("logs")

    @classmethod
    def from_env(cls) -> "Settings":
        """Load configuration values from environment variables."""

        def _get_env(name: str, default: str) -> str:
            return os.getenv(name, default)

        db_defaults = DatabaseSettings()
        database = DatabaseSettings(
            driver=_get_env("DB_DRIVER", db_defaults.driver),
            host=_get_env("DB_HOST", db_defaults.host),
            port=int(_get_env("DB_PORT", str(db_defaults.port))),
            user=_get_env("DB_USER", db_defaults.user),
            password=_get_env("DB_PASSWORD", db_defaults.password),
            name=_get_env("DB_NAME", db_defaults.name),
            url_override=os.getenv("DATABASE_URL") or None,
        )
        auth = AuthSettings(
            secret_key=_get_env("JWT_SECRET_KEY", "change-me"),
            algorithm=_get_env("JWT_ALGORITHM", "HS256"),
            access_token_expire_minutes=int(_get_env("JWT_EXPIRE_MINUTES", "120")),
            cookie_name=_get_env("AUTH_COOKIE_NAME", "access_token"),
            enabled=_get_env("AUTH_ENABLED", "1") not in _FALSE_VALUES,
        )
        cron = CronSettings(secret=_get_env("CRON_SECRET", ""))
        billing = BillingSettings(
            currency=_get_env("DEFAULT_CURRENCY", "EUR"),
            invoice_prefix=_get_env("INVOICE_PREFIX", "INV"),
            proposal_prefix=_get_env("PROPOSAL_PREFIX", "PROP"),
        )
        log_dir = _get_env("LOG_DIR", "logs")
        return cls(
            database=database,
            auth=auth,
            cron=cron,
            billing=billing,
            sqlalchemy_echo=_get_env("SQLALCHEMY_ECHO", "0") not in _FALSE_VALUES,
            log_level=_get_env("LOG_LEVEL", "INFO"),
            log_dir=Path(log_dir) if log_dir else None,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance."""

    return Settings.from_env()
