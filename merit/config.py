"""
merit.config — YAML Configuration Loader
=========================================

Reads ``config.yaml`` for application tuning: point ceilings, leaderboard
paging, the identity stamped on imported actions, and logging.  Secrets
(``DATABASE_URL``, ``JWT_SECRET``) stay in the environment.

Usage::

    from merit.config import load_config

    cfg = load_config()              # reads ./config.yaml by default
    print(cfg.max_action_points)     # 1000
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class MeritConfig:
    """Immutable configuration loaded from ``config.yaml``.

    Every field has a default so a partial YAML file (or none at all, via
    :func:`default_config`) yields a working configuration.
    """

    app_name: str = "Merit"

    # Catalog limits
    max_action_points: int = 1000
    max_bonus_points: int = 1000

    # Leaderboard
    leaderboard_page_size: int = 20
    nearby_window: int = 5  # Positions shown above/below the user

    # Identity recorded as reporter on imported actions
    system_reporter_id: str = "system-import"

    # Startup
    seed_default_catalog: bool = True
    log_level: str = "INFO"


def default_config() -> MeritConfig:
    """Return a :class:`MeritConfig` with every default applied."""
    return MeritConfig()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> MeritConfig:
    """Read *path* and return a :class:`MeritConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ValueError
        If a numeric limit is not a positive integer.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    defaults = MeritConfig()
    cfg = MeritConfig(
        app_name=raw.get("app_name", defaults.app_name),
        max_action_points=int(raw.get("max_action_points", defaults.max_action_points)),
        max_bonus_points=int(raw.get("max_bonus_points", defaults.max_bonus_points)),
        leaderboard_page_size=int(
            raw.get("leaderboard_page_size", defaults.leaderboard_page_size)
        ),
        nearby_window=int(raw.get("nearby_window", defaults.nearby_window)),
        system_reporter_id=str(raw.get("system_reporter_id", defaults.system_reporter_id)),
        seed_default_catalog=bool(
            raw.get("seed_default_catalog", defaults.seed_default_catalog)
        ),
        log_level=str(raw.get("log_level", defaults.log_level)).upper(),
    )
    for name in ("max_action_points", "leaderboard_page_size"):
        if getattr(cfg, name) < 1:
            raise ValueError(f"{name} must be at least 1")
    if cfg.max_bonus_points < 0 or cfg.nearby_window < 0:
        raise ValueError("max_bonus_points and nearby_window must not be negative")
    return cfg
