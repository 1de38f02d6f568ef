from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from objstore.infra.storage.client import ConfigError

ENV_FILE = Path(".env")

DEFAULT_REGION = "us-east-1"
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_READ_TIMEOUT = 60.0

_REQUIRED_FIELDS: tuple[str, ...] = ("access_key", "secret_key", "bucket", "endpoint")


def _load_env_file() -> None:
    if not ENV_FILE.exists():
        return
    for raw_line in ENV_FILE.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _as_float(value: str | None, default: float) -> float:
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigError(f"Expected a number, got {value!r}") from exc


def _strip_scheme(endpoint: str) -> str:
    host = endpoint.strip()
    for scheme in ("https://", "http://"):
        if host.lower().startswith(scheme):
            host = host[len(scheme) :]
            break
    return host.rstrip("/")


@dataclass(frozen=True)
class StoreConfig:
    """Connection settings for one bucket on an S3-compatible endpoint.

    ``endpoint`` is a bare host name (``s3.example.com``). A scheme prefix is
    tolerated and dropped; connections always use TLS.
    """

    access_key: str
    secret_key: str
    bucket: str
    endpoint: str
    region: str = DEFAULT_REGION
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    read_timeout: float = DEFAULT_READ_TIMEOUT

    def __post_init__(self) -> None:
        missing = [
            name
            for name in _REQUIRED_FIELDS
            if not isinstance(getattr(self, name), str)
            or not getattr(self, name).strip()
        ]
        if missing:
            raise ConfigError(
                f"StoreConfig is missing required field(s): {', '.join(missing)}"
            )
        if self.connect_timeout <= 0 or self.read_timeout <= 0:
            raise ConfigError("StoreConfig timeouts must be positive.")
        object.__setattr__(self, "endpoint", _strip_scheme(self.endpoint))
        if not self.endpoint:
            raise ConfigError("StoreConfig.endpoint must name a host.")

    @property
    def endpoint_url(self) -> str:
        return f"https://{self.endpoint}"

    @classmethod
    def from_environment(cls) -> "StoreConfig":
        _load_env_file()
        return cls(
            access_key=os.environ.get("OBJSTORE_ACCESS_KEY", ""),
            secret_key=os.environ.get("OBJSTORE_SECRET_KEY", ""),
            bucket=os.environ.get("OBJSTORE_BUCKET", ""),
            endpoint=os.environ.get("OBJSTORE_ENDPOINT", ""),
            region=os.environ.get("OBJSTORE_REGION") or DEFAULT_REGION,
            connect_timeout=_as_float(
                os.environ.get("OBJSTORE_CONNECT_TIMEOUT"), DEFAULT_CONNECT_TIMEOUT
            ),
            read_timeout=_as_float(
                os.environ.get("OBJSTORE_READ_TIMEOUT"), DEFAULT_READ_TIMEOUT
            ),
        )
