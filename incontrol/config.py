import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import yaml

from .ic_client import DEFAULT_BASE_URL, DEFAULT_TOKEN_URL, InControlClient
from .logging_config import is_valid_level

logger = logging.getLogger(__name__)


def _normalize_url(name: str, url: str) -> str:
    """Normalize an API URL and ensure it has a host."""
    u = url.strip().rstrip("/")
    # Collapse extra slashes after :// (e.g. https:///host -> https://host)
    u = re.sub(r"(https?):///+", r"\1://", u)
    parsed = urlparse(u)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise RuntimeError(
            f"{name} has no host: {url!r}. "
            "Use e.g. https://api.ic.peplink.com/rest (no extra slashes)."
        )
    return u


def _parse_bool(name: str, raw: Any, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    v = str(raw).strip().lower()
    if v in {"1", "true", "yes", "y", "on"}:
        return True
    if v in {"0", "false", "no", "n", "off"}:
        return False
    raise RuntimeError(f"Invalid boolean value for {name}={raw!r} (expected true/false).")


def _parse_int(name: str, raw: Any, default: int, minimum: int) -> int:
    if raw is None or raw == "":
        return default
    if isinstance(raw, bool):
        raise RuntimeError(f"{name} must be an integer")
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise RuntimeError(f"{name} must be an integer") from exc
    if value < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}, got: {value}")
    return value


def _read_secret_file(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    p = Path(path)
    if not p.is_file():
        logger.warning("Secret file %s does not exist", p)
        return None
    return p.read_text(encoding="utf-8").strip()


@dataclass
class Settings:
    client_id: str
    client_secret: str
    base_url: str = DEFAULT_BASE_URL
    token_url: str = DEFAULT_TOKEN_URL
    timeout: int = 30
    max_retries: int = 1
    verify_ssl: bool = True
    log_level: str = "INFO"
    log_dir: Optional[Path] = None
    output_dir: Path = Path("exports")

    def make_client(self) -> InControlClient:
        return InControlClient(
            base_url=self.base_url,
            token_url=self.token_url,
            timeout=self.timeout,
            max_retries=self.max_retries,
            verify_ssl=self.verify_ssl,
        )


def _build_settings(values: Dict[str, Any], source: str) -> Settings:
    """Validate raw values (from YAML or env) into Settings."""
    client_id = values.get("client_id")
    if not isinstance(client_id, str) or not client_id.strip():
        raise RuntimeError(f"client_id is required ({source})")

    client_secret: Optional[str] = None
    if isinstance(values.get("client_secret"), str) and values["client_secret"].strip():
        client_secret = values["client_secret"].strip()
    elif isinstance(values.get("client_secret_file"), str) and values["client_secret_file"].strip():
        client_secret = _read_secret_file(values["client_secret_file"].strip())
    if not client_secret:
        raise RuntimeError(f"client_secret (or client_secret_file) is required ({source})")

    base_url = _normalize_url("base_url", str(values.get("base_url") or DEFAULT_BASE_URL))
    token_url = _normalize_url("token_url", str(values.get("token_url") or DEFAULT_TOKEN_URL))

    log_level = str(values.get("log_level") or "INFO").strip().upper()
    if not is_valid_level(log_level):
        raise RuntimeError(
            f"Invalid log_level {values.get('log_level')!r} (expected DEBUG, INFO, WARNING, ERROR or CRITICAL)."
        )

    log_dir_raw = values.get("log_dir")
    log_dir = Path(str(log_dir_raw)) if log_dir_raw else None

    return Settings(
        client_id=client_id.strip(),
        client_secret=client_secret,
        base_url=base_url,
        token_url=token_url,
        timeout=_parse_int("timeout", values.get("timeout"), default=30, minimum=1),
        max_retries=_parse_int("max_retries", values.get("max_retries"), default=1, minimum=1),
        verify_ssl=_parse_bool("verify_ssl", values.get("verify_ssl"), default=True),
        log_level=log_level,
        log_dir=log_dir,
        output_dir=Path(str(values.get("output_dir") or "exports")),
    )


def _load_settings_from_yaml(path: str) -> Settings:
    """Load settings from a single YAML config file."""
    p = Path(path)
    if not p.is_file():
        raise RuntimeError(f"APP_CONFIG_FILE not found: {path}")

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise RuntimeError(f"Failed to read YAML config: {path}") from exc

    if not isinstance(raw, dict):
        raise RuntimeError("YAML config root must be a mapping/object")

    incontrol = raw.get("incontrol") or {}
    if not isinstance(incontrol, dict):
        raise RuntimeError("incontrol must be a mapping/object")

    runtime = raw.get("runtime") or {}
    if not isinstance(runtime, dict):
        raise RuntimeError("runtime must be a mapping/object")

    values: Dict[str, Any] = dict(incontrol)
    for key in ("log_level", "log_dir", "output_dir"):
        if key in runtime:
            values[key] = runtime[key]

    return _build_settings(values, source=f"YAML config {path}")


def load_settings() -> Settings:
    """Load settings from a YAML file (APP_CONFIG_FILE) or from environment variables."""
    app_config_file = os.getenv("APP_CONFIG_FILE")
    if app_config_file:
        return _load_settings_from_yaml(app_config_file)

    values = {
        "client_id": os.getenv("IC_CLIENT_ID"),
        # Prioritize direct env var over file-based secret
        "client_secret": os.getenv("IC_CLIENT_SECRET"),
        "client_secret_file": os.getenv("IC_CLIENT_SECRET_FILE"),
        "base_url": os.getenv("IC_BASE_URL"),
        "token_url": os.getenv("IC_TOKEN_URL"),
        "timeout": os.getenv("IC_TIMEOUT"),
        "max_retries": os.getenv("IC_MAX_RETRIES"),
        "verify_ssl": os.getenv("IC_VERIFY_SSL"),
        "log_level": os.getenv("LOG_LEVEL"),
        "log_dir": os.getenv("LOG_DIR"),
        "output_dir": os.getenv("IC_OUTPUT_DIR"),
    }
    return _build_settings(values, source="environment")
