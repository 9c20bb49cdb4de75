"""Configuration helpers for the ops calendar."""
from __future__ import annotations

import calendar
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


WEEK_STARTS = {"sunday": calendar.SUNDAY, "monday": calendar.MONDAY}
MANUAL_SCOPE_NAMES = ("involved", "owned", "all")


class ConfigError(RuntimeError):
    """Raised when configuration is missing or invalid."""


@dataclass(slots=True)
class Settings:
    """Runtime configuration for the schedule engine, API and CLI."""

    environment: str = "local"
    max_visible: int = 3
    week_start: int = calendar.SUNDAY
    # Which manual entries sales reps see: "involved", "owned" or "all"
    sales_manual_scope: str = "involved"
    strict_lead_names: bool = False
    owner_only_delete: bool = False
    dataset_path: Optional[Path] = None


def _flag(name: str) -> bool:
    return os.getenv(name, "0").strip() == "1"


def load_settings(*, dotenv: bool = True) -> Settings:
    """Load settings from environment variables (and a .env file if present).

    Raises:
        ConfigError: if a variable holds an unsupported value.
    """
    if dotenv:
        load_dotenv()

    raw_max = os.getenv("OPS_MAX_VISIBLE", "3").strip()
    try:
        max_visible = int(raw_max)
    except ValueError:
        raise ConfigError(f"OPS_MAX_VISIBLE must be an integer, got {raw_max!r}")
    if max_visible < 0:
        raise ConfigError("OPS_MAX_VISIBLE must be >= 0")

    week_start_name = os.getenv("OPS_WEEK_START", "sunday").strip().lower()
    if week_start_name not in WEEK_STARTS:
        raise ConfigError(
            f"OPS_WEEK_START must be 'sunday' or 'monday', got {week_start_name!r}"
        )

    manual_scope = os.getenv("OPS_SALES_MANUAL_SCOPE", "involved").strip().lower()
    if manual_scope not in MANUAL_SCOPE_NAMES:
        raise ConfigError(
            f"OPS_SALES_MANUAL_SCOPE must be one of {', '.join(MANUAL_SCOPE_NAMES)}"
        )

    dataset = os.getenv("OPS_DATASET", "").strip()

    return Settings(
        environment=os.getenv("OPS_ENV", "local"),
        max_visible=max_visible,
        week_start=WEEK_STARTS[week_start_name],
        sales_manual_scope=manual_scope,
        strict_lead_names=_flag("OPS_STRICT_LEAD_NAMES"),
        owner_only_delete=_flag("OPS_OWNER_ONLY_DELETE"),
        dataset_path=Path(dataset) if dataset else None,
    )
