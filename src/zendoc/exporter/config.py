from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

# Load .env configuration at module import
load_dotenv()

SETTINGS_FILE = "zendesk-settings.json"
DEFAULT_OUTPUT = "tickets.md"
DEFAULT_TIMEOUT = 30.0

_ENV_VARS = {
    "subdomain": "ZENDESK_SUBDOMAIN",
    "email": "ZENDESK_EMAIL",
    "token": "ZENDESK_TOKEN",
}


class ConfigError(ValueError):
    """Configuration is missing or invalid."""


@dataclass
class ZendeskConfig:
    """Connection settings for the Zendesk API."""

    subdomain: str
    email: str
    token: str
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self):
        if self.subdomain:
            self.subdomain = self.subdomain.strip().replace(".zendesk.com", "")

    @property
    def base_url(self) -> str:
        return f"https://{self.subdomain}.zendesk.com/api/v2"


@dataclass(frozen=True)
class TicketFilter:
    tags: tuple[str, ...] = ()
    form_id: Optional[str] = None
    status: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.tags or self.form_id or self.status)


@dataclass(frozen=True)
class ExportOptions:
    output: str = DEFAULT_OUTPUT
    tags: Optional[tuple[str, ...]] = None
    form: Optional[str] = None
    status: Optional[tuple[str, ...]] = None

    def to_filter(self) -> TicketFilter:
        return TicketFilter(tags=self.tags or (), form_id=self.form, status=self.status or ())


def load_config_from_file(path: str | Path = SETTINGS_FILE) -> dict[str, Any]:
    """Read the JSON settings file; a missing or unreadable file yields ``{}``."""
    path = Path(path)
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def load_config_from_env() -> dict[str, Any]:
    values: dict[str, Any] = {key: os.getenv(var) for key, var in _ENV_VARS.items()}
    if os.getenv("ZENDESK_TIMEOUT"):
        values["timeout"] = os.getenv("ZENDESK_TIMEOUT")
    return values


def resolve_config(
    subdomain: Optional[str] = None,
    email: Optional[str] = None,
    token: Optional[str] = None,
    settings_path: str | Path = SETTINGS_FILE,
) -> ZendeskConfig:
    """Merge settings file, environment and explicit values (in rising priority)."""
    merged: dict[str, Any] = {}
    cli_values = {"subdomain": subdomain, "email": email, "token": token}
    for source in (load_config_from_file(settings_path), load_config_from_env(), cli_values):
        merged.update({k: v for k, v in source.items() if v})

    for key, var in _ENV_VARS.items():
        if not merged.get(key):
            raise ConfigError(
                f"Zendesk {key} is not configured. Set {var} or create {SETTINGS_FILE}."
            )

    try:
        timeout = float(merged.get("timeout", DEFAULT_TIMEOUT))
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid timeout: {merged.get('timeout')!r}") from None

    return ZendeskConfig(
        subdomain=str(merged["subdomain"]),
        email=str(merged["email"]),
        token=str(merged["token"]),
        timeout=timeout,
    )


def validate_config(config: ZendeskConfig) -> None:
    if not config.subdomain or not isinstance(config.subdomain, str):
        raise ConfigError("Invalid subdomain")
    if not config.email or not isinstance(config.email, str) or "@" not in config.email:
        raise ConfigError("Invalid email address")
    if not config.token or not isinstance(config.token, str):
        raise ConfigError("Invalid API token")


def create_sample_config(path: str | Path = SETTINGS_FILE) -> Path:
    sample = {
        "subdomain": "your-subdomain",
        "email": "your-email@example.com",
        "token": "your-api-token",
    }
    path = Path(path)
    path.write_text(json.dumps(sample, indent=2) + "\n", encoding="utf-8")
    return path


def _split(value: Optional[str]) -> Optional[tuple[str, ...]]:
    if not value:
        return None
    items = tuple(item.strip() for item in value.split(",") if item.strip())
    return items or None


def parse_export_options(
    output: Optional[str] = None,
    tags: Optional[str] = None,
    form: Optional[str] = None,
    status: Optional[str] = None,
) -> ExportOptions:
    """Build ExportOptions from raw CLI strings (comma-separated lists)."""
    return ExportOptions(
        output=output or DEFAULT_OUTPUT,
        tags=_split(tags),
        form=form or None,
        status=_split(status),
    )
