import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    principal_header: str
    log_level: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///registry.db"),
        principal_header=_getenv("PRINCIPAL_HEADER", "X-Principal"),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
    )


def load_config() -> dict:
    s = load_settings()
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "PRINCIPAL_HEADER": s.principal_header,
        "LOG_LEVEL": s.log_level,
    }
