from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_BASE_URL = "https://api.assemblyai.com/v2"
DEFAULT_POLL_INTERVAL_SECONDS = 1.0
DEFAULT_MAX_POLL_ATTEMPTS = 120


@dataclass(slots=True)
class Settings:
    host: str
    port: int
    mcp_path: str
    health_path: str
    log_level: str
    data_dir: Path
    assemblyai_api_key: str
    assemblyai_base_url: str
    poll_interval_seconds: float
    max_poll_attempts: int
    http_timeout_seconds: float


def _as_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    return int(raw)


def _as_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    return float(raw)


def _normalized_path(path: str) -> str:
    if not path.startswith("/"):
        path = f"/{path}"
    return path


def load_settings() -> Settings:
    load_dotenv()
    data_dir = Path(os.getenv("DATA_DIR", "./data")).resolve()

    max_poll_attempts = _as_int("MAX_POLL_ATTEMPTS", DEFAULT_MAX_POLL_ATTEMPTS)
    if max_poll_attempts < 1:
        raise RuntimeError("MAX_POLL_ATTEMPTS must be at least 1")

    return Settings(
        host=os.getenv("HOST", "0.0.0.0"),
        port=_as_int("PORT", 3000),
        mcp_path=_normalized_path(os.getenv("MCP_PATH", "/mcp")),
        health_path=_normalized_path(os.getenv("HEALTH_PATH", "/healthz")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        data_dir=data_dir,
        # Empty is allowed here; callers may supply credentials per request.
        assemblyai_api_key=os.getenv("ASSEMBLYAI_API_KEY", "").strip(),
        assemblyai_base_url=os.getenv("ASSEMBLYAI_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
        poll_interval_seconds=_as_float("POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS),
        max_poll_attempts=max_poll_attempts,
        http_timeout_seconds=_as_float("HTTP_TIMEOUT_SECONDS", 600.0),
    )
