"""Application settings with JSON persistence.

Settings are stored at:
    <data dir>/settings.json

where the data dir is ``~/.local/share/FlowTimer`` unless
``FLOWTIMER_HOME`` points elsewhere.

Usage::

    settings = load_settings()
    settings.attribution_policy = "minutes_floor"
    save_settings(settings)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, asdict, fields

from .database.db import APP_SUPPORT_DIR


logger = logging.getLogger(__name__)

SETTINGS_PATH = APP_SUPPORT_DIR / "settings.json"


@dataclass
class Settings:
    """All user-configurable preferences."""

    # ── time attribution ──────────────────────────────────────────────
    attribution_policy: str = "seconds"    # seconds | minutes_floor
    drift_correction: bool = False

    # ── flow editor defaults ──────────────────────────────────────────
    default_timer_minutes: int = 25
    default_loop_count: int = 2
    default_notification: str = "sound"    # sound | alert | none

    # ── audio ─────────────────────────────────────────────────────────
    sound_enabled: bool = True
    sound_volume: int = 70                 # 0-100

    # ── notifications ─────────────────────────────────────────────────
    notifications_enabled: bool = True

    # ── last selection (restored on launch) ───────────────────────────
    last_preset_id: str | None = None
    last_task_id: str | None = None

    # ── window ────────────────────────────────────────────────────────
    window_width: int = 980
    window_height: int = 680


def _matches_default(default: object, value: object) -> bool:
    if default is None:
        return value is None or isinstance(value, str)
    if isinstance(default, bool) or isinstance(value, bool):
        return type(value) is type(default)
    return isinstance(value, type(default))


def load_settings() -> Settings:
    """Load settings from disk, falling back to defaults.

    Unknown keys are ignored.  A value of the wrong JSON type keeps that
    field's default and is logged.
    """
    try:
        if not SETTINGS_PATH.exists():
            return Settings()
        data = json.loads(SETTINGS_PATH.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("settings file must hold a JSON object")
    except (OSError, ValueError):
        logger.warning("Could not read %s, using defaults", SETTINGS_PATH, exc_info=True)
        return Settings()

    defaults = Settings()
    values = {}
    for f in fields(Settings):
        if f.name not in data:
            continue
        value = data[f.name]
        if _matches_default(getattr(defaults, f.name), value):
            values[f.name] = value
        else:
            logger.warning("Ignoring setting %s=%r", f.name, value)
    return Settings(**values)


def save_settings(settings: Settings) -> None:
    """Write settings to disk as JSON."""
    SETTINGS_PATH.parent.mkdir(parents=True, exist_ok=True)
    SETTINGS_PATH.write_text(
        json.dumps(asdict(settings), indent=2) + "\n",
        encoding="utf-8",
    )
