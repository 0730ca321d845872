# config.py
# Environment-driven settings in one place. Values are read at call time so
# tests can override them with monkeypatch.setenv().

import os

from dotenv import load_dotenv

load_dotenv()

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000
DEFAULT_HTTP_TIMEOUT = 10.0


def _flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


def executor_name() -> str:
    return os.getenv("MTP_EXECUTOR_NAME", "AlphaNode")


def executor_private_key() -> str | None:
    """Hex Ed25519 seed for a persistent executor identity, if configured."""
    return os.getenv("MTP_EXECUTOR_PRIVATE_KEY") or None


def requester_name() -> str:
    return os.getenv("MTP_REQUESTER_NAME", "ClientOne")


def host() -> str:
    return os.getenv("MTP_HOST", DEFAULT_HOST)


def port() -> int:
    return int(os.getenv("MTP_PORT", str(DEFAULT_PORT)))


def replay_window_ms() -> int | None:
    """Replay window for the executor's task policy. Unset or 0 disables it."""
    raw = os.getenv("MTP_REPLAY_WINDOW_MS", "").strip()
    value = int(raw) if raw else 0
    return value or None


def http_timeout() -> float:
    return float(os.getenv("MTP_HTTP_TIMEOUT", str(DEFAULT_HTTP_TIMEOUT)))


def quiet() -> bool:
    return _flag("MTP_QUIET")
