from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

DEFAULT_DB_PATH = "./database.sqlite"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None or v.strip() == "" else v.strip()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


@dataclass(frozen=True)
class Settings:
    database_url: str = f"sqlite:///{DEFAULT_DB_PATH}"
    jwt_secret: str = "dev-secret-change-me"
    jwt_ttl_seconds: int = 24 * 60 * 60
    pbkdf2_iters: int = 200_000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    redis_url: str | None = None
    host: str = "0.0.0.0"
    port: int = 3001
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the environment (and a local .env, if any)."""
        load_dotenv(override=False)

        url = _env("DATABASE_URL")
        if not url:
            # DB_PATH is the older knob: a plain SQLite file path.
            url = f"sqlite:///{_env('DB_PATH', DEFAULT_DB_PATH)}"

        return cls(
            database_url=url,
            jwt_secret=_env("JWT_SECRET", cls.jwt_secret),
            jwt_ttl_seconds=_env_int("JWT_TTL_SECONDS", cls.jwt_ttl_seconds),
            pbkdf2_iters=_env_int("PBKDF2_ITERS", cls.pbkdf2_iters),
            cors_origins=_env_list("CORS_ORIGINS", ["*"]),
            redis_url=_env("REDIS_URL") or None,
            host=_env("HOST", cls.host),
            port=_env_int("PORT", cls.port),
            log_level=_env("LOG_LEVEL", cls.log_level).upper(),
        )
