import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load a local .env file if present.
load_dotenv()


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a boolean environment variable.

    Returns:
      - True/False if the env var is set to a recognizable value
      - default if unset or unrecognized

    Accepted truthy: 1, true, yes, y, on
    Accepted falsy:  0, false, no, n, off
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    IMPORTANT: Provide secrets via environment variables or a .env file.
    Do not hardcode secrets in source code.
    """

    # -----------------
    # Core
    # -----------------
    # Preferred: set REDRICE_DATABASE_URL (or DATABASE_URL) to use Postgres.
    # Fallback: REDRICE_DB_PATH for SQLite.
    DB_DSN: str = (
        os.environ.get("REDRICE_DATABASE_URL")
        or os.environ.get("DATABASE_URL")
        or os.environ.get("REDRICE_DB_PATH", "./redrice.sqlite")
    )

    # -----------------
    # Auth (JWT)
    # -----------------
    # NOTE: In dev, this defaults to a fixed string so you can get started.
    # In production, you MUST set AUTH_JWT_SECRET to a strong random value.
    AUTH_JWT_SECRET: str = os.environ.get("AUTH_JWT_SECRET", "dev_change_me")
    AUTH_TOKEN_EXPIRE_MINUTES: int = int(os.environ.get("AUTH_TOKEN_EXPIRE_MINUTES", "1440"))  # 24h

    # Bootstrap first admin user if users table is empty.
    # Set AUTH_BOOTSTRAP_ADMIN=0 to skip it entirely.
    AUTH_BOOTSTRAP_ADMIN: bool = _env_bool("AUTH_BOOTSTRAP_ADMIN", True) is True
    AUTH_BOOTSTRAP_ADMIN_EMAIL: str = os.environ.get("AUTH_BOOTSTRAP_ADMIN_EMAIL", "admin@redrice.local")
    AUTH_BOOTSTRAP_ADMIN_PASSWORD: str = os.environ.get("AUTH_BOOTSTRAP_ADMIN_PASSWORD", "admin")

    # -----------------
    # CORS (development)
    # -----------------
    CORS_ALLOW_ORIGINS: str = os.environ.get(
        "CORS_ALLOW_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173",
    )

    # -----------------
    # Restaurant images (S3)
    # -----------------
    S3_BUCKET: str = os.environ.get("S3_BUCKET", "redrice")
    AWS_REGION: str = os.environ.get("AWS_REGION", "ap-southeast-1")
    S3_KEY_PREFIX: str = os.environ.get("S3_KEY_PREFIX", "restaurants")
    # Public URL base for uploaded objects (e.g. a CDN). Defaults to the bucket's S3 URL.
    S3_PUBLIC_BASE_URL: str | None = (os.environ.get("S3_PUBLIC_BASE_URL") or "").strip() or None

    # Same cap as the multipart form limit (10 MiB).
    MAX_IMAGE_BYTES: int = int(os.environ.get("MAX_IMAGE_BYTES", str(10 << 20)))
    ALLOWED_IMAGE_EXTENSIONS: str = os.environ.get("ALLOWED_IMAGE_EXTENSIONS", "jpg,jpeg,png,gif,webp")


def load_config() -> Config:
    return Config()
