"""Connection settings for the CLI, resolved from flags first and then the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import urlsplit

import typer

DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_POLL_TIMEOUT = 10.0

ENV_BASE_URL = "API_BASE_URL"
ENV_POLL_INTERVAL = "CLI_POLL_INTERVAL"
ENV_POLL_TIMEOUT = "CLI_POLL_TIMEOUT"


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = DEFAULT_BASE_URL
    poll_interval: float = DEFAULT_POLL_INTERVAL
    # Seconds a single HTTP request to the service may take.
    poll_timeout: float = DEFAULT_POLL_TIMEOUT


def normalize_base_url(raw: str) -> str:
    """Accept ``host:port`` shorthand and drop trailing slashes."""
    candidate = raw.strip()
    if "://" not in candidate:
        candidate = f"http://{candidate}"
    parts = urlsplit(candidate)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise typer.BadParameter(f"{raw!r} is not an http(s) URL.", param_hint="--base-url")
    return candidate.rstrip("/")


def _positive_seconds(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    try:
        seconds = float(raw)
    except ValueError:
        return default
    return seconds if seconds > 0 else default


def load_config(
    base_url: Optional[str] = None,
    poll_interval: Optional[float] = None,
    poll_timeout: Optional[float] = None,
    env: Optional[Mapping[str, str]] = None,
) -> CLIConfig:
    source = os.environ if env is None else env
    return CLIConfig(
        base_url=normalize_base_url(base_url or source.get(ENV_BASE_URL) or DEFAULT_BASE_URL),
        poll_interval=(
            poll_interval
            if poll_interval is not None
            else _positive_seconds(source, ENV_POLL_INTERVAL, DEFAULT_POLL_INTERVAL)
        ),
        poll_timeout=(
            poll_timeout
            if poll_timeout is not None
            else _positive_seconds(source, ENV_POLL_TIMEOUT, DEFAULT_POLL_TIMEOUT)
        ),
    )
