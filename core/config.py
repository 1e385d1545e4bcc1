"""
Runtime settings, read from ``AUTHSYNC_*`` environment variables.

=============================  ===========================  =========
Variable                       Meaning                      Default
=============================  ===========================  =========
AUTHSYNC_SYNC_TIMEOUT          HTTP timeout (seconds)       5.0
AUTHSYNC_COOLDOWN_MINUTES      Sync cooldown after failure  5
AUTHSYNC_COOLDOWN_SCOPE        ``process`` or ``instance``  process
AUTHSYNC_DB_PATH               SQLite store location        see below
AUTHSYNC_LOG_LEVEL             Root log level               INFO
=============================  ===========================  =========
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

COOLDOWN_SCOPES = ("process", "instance")

# %APPDATA%\authsync (Windows), ~/.local/share/authsync (Linux/macOS)
_DEFAULT_DIR = Path(os.environ.get("APPDATA", Path.home() / ".local" / "share")) / "authsync"


@dataclass(frozen=True)
class Settings:
    sync_timeout: float = 5.0
    cooldown_minutes: int = 5
    cooldown_scope: str = "process"
    db_path: Path = _DEFAULT_DIR / "authsync.db"
    log_level: str = "INFO"


def _positive(raw: Optional[str], name: str, cast, default):
    if raw is None or raw == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a number.", name, raw)
        return default
    if value <= 0:
        logger.warning("Ignoring %s=%r: must be positive.", name, raw)
        return default
    return value


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from ``environ`` (defaults to ``os.environ``)."""
    env = os.environ if environ is None else environ
    defaults = Settings()

    scope = env.get("AUTHSYNC_COOLDOWN_SCOPE", defaults.cooldown_scope).strip().lower()
    if scope not in COOLDOWN_SCOPES:
        logger.warning("Ignoring AUTHSYNC_COOLDOWN_SCOPE=%r: expected one of %s.", scope, COOLDOWN_SCOPES)
        scope = defaults.cooldown_scope

    db_path = env.get("AUTHSYNC_DB_PATH")

    return Settings(
        sync_timeout=_positive(env.get("AUTHSYNC_SYNC_TIMEOUT"), "AUTHSYNC_SYNC_TIMEOUT", float, defaults.sync_timeout),
        cooldown_minutes=_positive(
            env.get("AUTHSYNC_COOLDOWN_MINUTES"), "AUTHSYNC_COOLDOWN_MINUTES", int, defaults.cooldown_minutes
        ),
        cooldown_scope=scope,
        db_path=Path(db_path) if db_path else defaults.db_path,
        log_level=env.get("AUTHSYNC_LOG_LEVEL", defaults.log_level).upper(),
    )
