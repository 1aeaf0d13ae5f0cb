import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    log_level: str

    jwt_access_secret: str
    jwt_refresh_secret: str
    jwt_algorithm: str
    jwt_access_expires_minutes: int
    jwt_refresh_expires_days: int


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///crm.db"),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
        jwt_access_secret=_getenv("JWT_ACCESS_SECRET", "change-me"),
        jwt_refresh_secret=_getenv("JWT_REFRESH_SECRET", "change-me-refresh"),
        jwt_algorithm=_getenv("JWT_ALGORITHM", "HS256"),
        jwt_access_expires_minutes=_getenv_int("JWT_ACCESS_EXPIRES_MINUTES", 60),
        jwt_refresh_expires_days=_getenv_int("JWT_REFRESH_EXPIRES_DAYS", 7),
    )


def load_config() -> dict:
    s = load_settings()
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "LOG_LEVEL": s.log_level,
        "JWT_ACCESS_SECRET": s.jwt_access_secret,
        "JWT_REFRESH_SECRET": s.jwt_refresh_secret,
        "JWT_ALGORITHM": s.jwt_algorithm,
        "JWT_ACCESS_EXPIRES_MINUTES": s.jwt_access_expires_minutes,
        "JWT_REFRESH_EXPIRES_DAYS": s.jwt_refresh_expires_days,
    }


def check_production_config(config: dict) -> None:
    """
    Production guardrails (fail fast with clear messages).
    """
    env = (config.get("ENV") or "").strip().lower()
    if env not in ("prod", "production"):
        return
    db_url = str(config.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("DATABASE_URL is required in production.")
    if db_url.startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
    for key in ("SECRET_KEY", "JWT_ACCESS_SECRET", "JWT_REFRESH_SECRET"):
        value = str(config.get(key) or "")
        if value in ("", "change-me", "change-me-refresh"):
            raise RuntimeError(f"{key} must be set to a strong value in production (not default).")
