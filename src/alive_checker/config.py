"""Runtime configuration for the alive-status checker."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

ENV_PREFIX = "ALIVE_CHECKER_"


@dataclass(slots=True, frozen=True)
class ClientSettings:
    """Identity and endpoints registered with the interoperability platform."""

    key_id: str = ""
    client_id: str = ""
    audience: str = ""
    signature_audience: str = ""
    purpose_id: str = ""
    private_key_path: Path = Path("private_key.pem")
    user_id: str = ""
    service_url: str = ""
    authentication_url: str = ""


@dataclass(slots=True, frozen=True)
class StorageSettings:
    """SQLite queue/result storage settings."""

    db_path: Path = Path(".alive_checker.db")
    initialize_db: bool = False
    busy_timeout_ms: int = 5_000


@dataclass(slots=True, frozen=True)
class HttpSettings:
    """Outbound HTTP settings."""

    timeout_seconds: float = 30.0
    connect_retries: int = 2


@dataclass(slots=True, frozen=True)
class RateLimitSettings:
    """Fixed-window limit agreed with the remote service."""

    permit_limit: int = 49_900
    window_seconds: int = 86_400


@dataclass(slots=True, frozen=True)
class Settings:
    """Application settings grouped by concern."""

    client: ClientSettings = field(default_factory=ClientSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    http: HttpSettings = field(default_factory=HttpSettings)
    rate_limit: RateLimitSettings = field(default_factory=RateLimitSettings)

    @classmethod
    def from_env(
        cls,
        db_path: Path | None = None,
        *,
        initialize_db: bool | None = None,
    ) -> Settings:
        """Load settings from environment; CLI overrides win over variables."""

        return cls(
            client=ClientSettings(
                key_id=_env("KEY_ID"),
                client_id=_env("CLIENT_ID"),
                audience=_env("AUDIENCE"),
                signature_audience=_env("SIGNATURE_AUDIENCE"),
                purpose_id=_env("PURPOSE_ID"),
                private_key_path=Path(_env("PRIVATE_KEY_PATH", "private_key.pem")),
                user_id=_env("USER_ID"),
                service_url=_env("SERVICE_URL"),
                authentication_url=_env("AUTHENTICATION_URL"),
            ),
            storage=StorageSettings(
                db_path=db_path or Path(_env("DB_PATH", ".alive_checker.db")),
                initialize_db=(
                    initialize_db
                    if initialize_db is not None
                    else _env_bool(f"{ENV_PREFIX}INITIALIZE_DB", default=False)
                ),
                busy_timeout_ms=int(_env("SQLITE_BUSY_TIMEOUT_MS", "5000")),
            ),
            http=HttpSettings(
                timeout_seconds=float(_env("HTTP_TIMEOUT_SECONDS", "30.0")),
                connect_retries=int(_env("HTTP_CONNECT_RETRIES", "2")),
            ),
            rate_limit=RateLimitSettings(
                permit_limit=int(_env("RATE_LIMIT_PERMITS", "49900")),
                window_seconds=int(_env("RATE_LIMIT_WINDOW_SECONDS", "86400")),
            ),
        )

    def validate_for_run(self) -> None:
        """Raise configuration error if anything needed for a verification run is missing."""

        required = {
            "KEY_ID": self.client.key_id,
            "CLIENT_ID": self.client.client_id,
            "AUDIENCE": self.client.audience,
            "SIGNATURE_AUDIENCE": self.client.signature_audience,
            "PURPOSE_ID": self.client.purpose_id,
            "USER_ID": self.client.user_id,
            "SERVICE_URL": self.client.service_url,
            "AUTHENTICATION_URL": self.client.authentication_url,
        }
        missing = sorted(f"{ENV_PREFIX}{name}" for name, value in required.items() if not value)
        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}.")

        _validate_url("ALIVE_CHECKER_SERVICE_URL", self.client.service_url)
        _validate_url("ALIVE_CHECKER_AUTHENTICATION_URL", self.client.authentication_url)
        if not self.client.private_key_path.is_file():
            raise ValueError(
                f"Private key file not found: {self.client.private_key_path} "
                "(set ALIVE_CHECKER_PRIVATE_KEY_PATH).",
            )
        if self.rate_limit.permit_limit <= 0:
            raise ValueError("ALIVE_CHECKER_RATE_LIMIT_PERMITS must be > 0.")
        if self.rate_limit.window_seconds <= 0:
            raise ValueError("ALIVE_CHECKER_RATE_LIMIT_WINDOW_SECONDS must be > 0.")
        if self.http.timeout_seconds <= 0:
            raise ValueError("ALIVE_CHECKER_HTTP_TIMEOUT_SECONDS must be > 0.")
        if self.http.connect_retries < 0:
            raise ValueError("ALIVE_CHECKER_HTTP_CONNECT_RETRIES must be >= 0.")


def _env(name: str, default: str = "") -> str:
    return os.getenv(f"{ENV_PREFIX}{name}", default).strip()


def _validate_url(name: str, value: str) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(
            f"Invalid {name}: {value!r}. Expected an absolute URL with http:// or https:// scheme.",
        )


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
