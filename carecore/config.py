"""Runtime settings read from the environment (and an optional ``.env`` file)."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off", ""}:
        return False
    return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("%s=%r is not a number; using %s", name, raw, default)
        return default


@dataclass(frozen=True)
class Settings:
    mock: bool = True
    api_base_url: str = "http://localhost:3000"
    store_path: Optional[str] = None
    budget_latency_ms: float = 60.0
    http_timeout: float = 10.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        if dotenv:
            # existing environment variables win over .env
            load_dotenv(find_dotenv(usecwd=True), override=False)
        return cls(
            mock=_env_bool("CARE_ENABLE_MOCK", True),
            api_base_url=(os.getenv("CARE_API_BASE_URL") or "http://localhost:3000").rstrip("/"),
            store_path=os.getenv("CARE_STORE_PATH") or None,
            budget_latency_ms=max(0.0, _env_float("CARE_BUDGET_LATENCY_MS", 60.0)),
            http_timeout=_env_float("CARE_HTTP_TIMEOUT", 10.0),
            log_level=(os.getenv("CARE_LOG_LEVEL") or "INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger; safe to call on every rerun."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    else:
        root.setLevel(level)
    logging.getLogger("carecore").setLevel(level)
