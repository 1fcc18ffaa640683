import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    admin_principal: str
    principal_header: str
    log_level: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///recordstore.db"),
        admin_principal=_getenv("ADMIN_PRINCIPAL", ""),
        principal_header=_getenv("PRINCIPAL_HEADER", "X-Principal"),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
    )


def load_config() -> dict:
    s = load_settings()
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "ADMIN_PRINCIPAL": s.admin_principal,
        "PRINCIPAL_HEADER": s.principal_header,
        "LOG_LEVEL": s.log_level,
        # request bodies are small JSON documents (ids and hashes only)
        "MAX_CONTENT_LENGTH": 1 * 1024 * 1024,
    }


def check_production_config(config: dict) -> None:
    """
    Production guardrails. Raises RuntimeError with a clear message on misconfiguration.
    """
    env = (config.get("ENV") or "").strip().lower()
    if env not in ("prod", "production"):
        return
    if not config.get("DATABASE_URL") or str(config["DATABASE_URL"]).strip() == "":
        raise RuntimeError("DATABASE_URL is required in production.")
    if str(config["DATABASE_URL"]).startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
    if not config.get("SECRET_KEY") or str(config["SECRET_KEY"]) in ("", "change-me"):
        raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
    if not (config.get("ADMIN_PRINCIPAL") or "").strip():
        raise RuntimeError("ADMIN_PRINCIPAL must be set in production.")
