"""Process-wide presenter settings and their YAML loader."""

from pathlib import Path
from typing import Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

DEFAULT_SETTINGS_PATH = Path("apistem.config.yaml")


class PresenterSettings(BaseModel):
    """Immutable settings handed to presenter collections and query strategies.

    Intended to be built once at boot (see ``apistem.registry.configure``).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    default_per_page: int = Field(default=20, ge=1, description="Page size when per_page is absent or invalid")
    default_max_per_page: int = Field(default=200, ge=1, description="Upper bound for per_page")
    default_max_filter_and_search_page: int = Field(
        default=500,
        ge=1,
        description="Maximum ids requested from search when intersecting with filters",
    )
    mysql_use_calc_found_rows: bool = Field(
        default=False,
        description="Use SQL_CALC_FOUND_ROWS / FOUND_ROWS() to page and count in one round trip on MySQL",
    )
    pluck_ids_dialects: Tuple[str, ...] = Field(
        default=("mysql", "sqlite"),
        description="Dialects where ids are plucked in order, then rows refetched by id",
    )
    default_namespace: str = Field(default="none", description="Namespace for presenters that declare none")


def load_settings(path: Path | None = None) -> PresenterSettings:
    """
    Load presenter settings from a YAML file.

    The file holds a flat mapping of ``PresenterSettings`` fields; an empty
    file yields the defaults.

    Args:
        path: Optional path to the YAML file. Defaults to apistem.config.yaml

    Returns:
        Frozen PresenterSettings

    Raises:
        FileNotFoundError: If the settings file doesn't exist
        ValueError: If the file is not a mapping or holds unknown/invalid keys
    """
    cfg_path = path or DEFAULT_SETTINGS_PATH
    if not cfg_path.exists():
        raise FileNotFoundError(f"Settings file not found: {cfg_path}")

    with cfg_path.open("r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError("Settings file must contain a dictionary")

    if "pluck_ids_dialects" in config:
        dialects = config["pluck_ids_dialects"]
        if not isinstance(dialects, list):
            raise ValueError("Settings 'pluck_ids_dialects' must be a list")
        config["pluck_ids_dialects"] = tuple(str(d).lower() for d in dialects)

    try:
        return PresenterSettings(**config)
    except ValidationError as e:
        raise ValueError(f"Invalid settings in {cfg_path}: {e}") from e
