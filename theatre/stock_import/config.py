"""
Configuration for the stock import engine.

Vocabularies, extra header aliases and engine settings.
Config is declarative JSON - edit the file, not the code.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path

from .models import ImportField

DEFAULT_CONFIG_PATH = Path(__file__).parent / "stock_import_config.json"

# Hard ceiling of operations per atomic write group in the store
MAX_WRITE_GROUP_SIZE = 500


@dataclass
class ImportSettings:
    """Settings for resolution and persistence."""
    fuzzy_max_distance: int = 2
    write_group_size: int = 450
    create_missing_storages: bool = True


@dataclass
class Config:
    """Full configuration for imports and bulk edits."""
    categories: list[str] = field(default_factory=lambda: ["trauma", "emergency", "elective"])
    types: list[str] = field(default_factory=list)
    usages: list[str] = field(default_factory=lambda: ["high", "medium", "low"])
    header_aliases: dict[str, ImportField] = field(default_factory=dict)
    settings: ImportSettings = field(default_factory=ImportSettings)

    def __post_init__(self):
        size = self.settings.write_group_size
        if not 1 <= size <= MAX_WRITE_GROUP_SIZE:
            raise ValueError(
                f"write_group_size must be between 1 and {MAX_WRITE_GROUP_SIZE}, got {size}"
            )
        if self.settings.fuzzy_max_distance < 0:
            raise ValueError("fuzzy_max_distance must not be negative")


def load_config(config_path: str | Path) -> Config:
    """
    Load configuration from JSON file.

    Args:
        config_path: Path to stock_import_config.json

    Returns:
        Config object with vocabularies, aliases and settings
    """
    path = Path(config_path)
    with open(path, "r") as f:
        data = json.load(f)

    # Parse aliases; values must be canonical import fields
    aliases = {}
    for alias, target in data.get("header_aliases", {}).items():
        try:
            aliases[alias.lower()] = ImportField(target)
        except ValueError:
            raise ValueError(f"Header alias {alias!r} points at unknown field {target!r}")

    settings_data = data.get("settings", {})
    settings = ImportSettings(
        fuzzy_max_distance=int(settings_data.get("fuzzy_max_distance", 2)),
        write_group_size=int(settings_data.get("write_group_size", 450)),
        create_missing_storages=bool(settings_data.get("create_missing_storages", True)),
    )

    defaults = Config()
    return Config(
        categories=[c.lower() for c in data.get("categories", defaults.categories)],
        types=list(data.get("types", [])),
        usages=[u.lower() for u in data.get("usages", defaults.usages)],
        header_aliases=aliases,
        settings=settings,
    )


def default_config() -> Config:
    """Load the config file shipped with the package."""
    return load_config(DEFAULT_CONFIG_PATH)
