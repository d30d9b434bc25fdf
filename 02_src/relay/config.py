"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "relay.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

CHAT_API_ROOT = "https://chat.botpress.cloud"
ADMIN_API_ROOT = "https://api.botpress.cloud"

DEFAULT_BOT_KEYWORDS = ("helpen", "kan ik")
PLACEHOLDER_MARKERS = ("{{ $json",)


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        DATA_DIR.mkdir(parents=True, exist_ok=True)
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class RelaySettings:
    """Runtime settings for the relay service."""

    api_host: str = "localhost"
    api_port: int = 3001
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])

    # Botpress
    api_id: str | None = None
    bearer_token: str | None = None
    bot_id: str | None = None
    workspace_id: str | None = None
    knowledge_base_id: str | None = None
    admin_api_root: str = ADMIN_API_ROOT

    # Outbound workflow
    n8n_webhook_url: str | None = None

    # Reconciliation
    quiet_period_seconds: float = 6.0
    retention_seconds: float = 300.0
    sweep_interval_seconds: float = 60.0
    authorship_heuristic: bool = True
    bot_keywords: tuple[str, ...] = DEFAULT_BOT_KEYWORDS

    upstream_timeout_seconds: float = 30.0

    # Polling client
    poll_interval_seconds: float = 2.0
    poll_slow_interval_seconds: float = 3.0
    poll_slowdown_after: int = 20
    poll_max_attempts: int = 60
    poll_max_empty: int = 20

    database_url: str | None = None
    trace_retention_seconds: float = 86400.0

    @property
    def chat_base_url(self) -> str | None:
        """Botpress Chat API base url, or None when API_ID is unset."""
        if not self.api_id:
            return None
        return f"{CHAT_API_ROOT}/{self.api_id}"

    @classmethod
    def from_env(cls) -> "RelaySettings":
        """Build settings from environment variables."""
        origins = os.getenv("CORS_ORIGINS", "http://localhost:3000")
        return cls(
            api_host=os.getenv("API_HOST", "localhost"),
            api_port=_env_int("API_PORT", 3001),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            api_id=os.getenv("API_ID"),
            bearer_token=os.getenv("BOTPRESS_BEARER_TOKEN"),
            bot_id=os.getenv("BOTPRESS_BOT_ID"),
            workspace_id=os.getenv("BOTPRESS_WORKSPACE_ID"),
            knowledge_base_id=os.getenv("BOTPRESS_KNOWLEDGE_BASE_ID"),
            n8n_webhook_url=os.getenv("N8N_WEBHOOK_URL") or None,
            quiet_period_seconds=_env_float("QUIET_PERIOD_SECONDS", 6.0),
            retention_seconds=_env_float("RETENTION_SECONDS", 300.0),
            sweep_interval_seconds=_env_float("SWEEP_INTERVAL_SECONDS", 60.0),
            authorship_heuristic=_env_bool("AUTHORSHIP_HEURISTIC", True),
            upstream_timeout_seconds=_env_float("UPSTREAM_TIMEOUT_SECONDS", 30.0),
            poll_interval_seconds=_env_float("POLL_INTERVAL_SECONDS", 2.0),
            poll_slow_interval_seconds=_env_float("POLL_SLOW_INTERVAL_SECONDS", 3.0),
            poll_slowdown_after=_env_int("POLL_SLOWDOWN_AFTER", 20),
            poll_max_attempts=_env_int("POLL_MAX_ATTEMPTS", 60),
            poll_max_empty=_env_int("POLL_MAX_EMPTY", 20),
            database_url=os.getenv("DATABASE_URL"),
            trace_retention_seconds=_env_float("TRACE_RETENTION_SECONDS", 86400.0),
        )
