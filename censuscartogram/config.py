"""
Configuration loading.

Settings are read from YAML. The packaged defaults in
``censuscartogram/data/ireland.yaml`` are always loaded first and a user
file (or mapping) is merged over them, so a user file only needs to state
what differs, typically the input paths.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Mapping

import yaml

from censuscartogram.census import year_from_label
from censuscartogram.errors import CensusDataError, ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "data" / "ireland.yaml"

PREPARE_MODES = ("adjust", "none")


def deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """
    Recursively merge override into a copy of base.

    Nested mappings are merged key by key, every other value (including
    lists) in override replaces the value in base.
    """
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        logger.error("Config file not found: %s", path)
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Top level of {path} must be a mapping")
    logger.info("Loaded config from %s", path)
    return data


class CartogramConfig:
    """
    Settings for one census cartogram run.

    Parameters
    ----------
    data : dict
        Complete settings (defaults already merged in).
    base_dir : pathlib.Path, optional
        Directory that relative paths are resolved against
        (default: current working directory).

    Examples
    --------
    >>> config = CartogramConfig.from_file("my_run.yaml")
    >>> config.census["years"][:3]
    ['1841', '1851', '1861']
    """

    def __init__(self, data: dict[str, Any], base_dir: Path | None = None) -> None:
        self.data = data
        self.base_dir = Path(base_dir) if base_dir is not None else Path.cwd()
        self.validate()

    @classmethod
    def from_file(cls, config_path: str | Path | None = None) -> "CartogramConfig":
        """
        Load the defaults and merge the YAML file at config_path over them.

        Relative paths in the file are resolved against its directory.
        """
        data = _read_yaml(DEFAULT_CONFIG_PATH)
        if config_path is None:
            return cls(data)

        config_path = Path(config_path)
        data = deep_merge(data, _read_yaml(config_path))
        return cls(data, base_dir=config_path.resolve().parent)

    @classmethod
    def from_dict(
        cls,
        overrides: Mapping[str, Any],
        base_dir: str | Path | None = None,
    ) -> "CartogramConfig":
        """Merge a mapping over the defaults."""
        data = deep_merge(_read_yaml(DEFAULT_CONFIG_PATH), overrides)
        return cls(data, base_dir=base_dir)

    def resolve_path(self, path: str | Path) -> Path:
        """Return path, made absolute relative to base_dir."""
        path = Path(path).expanduser()
        if path.is_absolute():
            return path
        return self.base_dir / path

    @property
    def census(self) -> dict[str, Any]:
        return self.data.get("census", {})

    @property
    def boundaries(self) -> dict[str, Any]:
        return self.data.get("boundaries", {})

    @property
    def cartogram(self) -> dict[str, Any]:
        return self.data.get("cartogram", {})

    @property
    def output(self) -> dict[str, Any]:
        return self.data.get("output", {})

    @property
    def census_path(self) -> Path:
        return self.resolve_path(self.census["path"])

    @property
    def boundaries_path(self) -> Path:
        return self.resolve_path(self.boundaries["path"])

    @property
    def output_dir(self) -> Path:
        return self.resolve_path(self.output.get("directory", "output"))

    def aliases(self, section: str) -> dict[str, str]:
        """
        Name aliases for 'census' or 'boundaries'.

        The shared top-level aliases are combined with the section's own,
        the section taking precedence.
        """
        aliases = dict(self.data.get("aliases") or {})
        aliases.update(self.data.get(section, {}).get("aliases") or {})
        return aliases

    @property
    def animations(self) -> list[dict[str, Any]]:
        return list(self.output.get("animations") or [])

    @property
    def static_years(self) -> list[int] | None:
        years = self.output.get("static_years")
        if years is None:
            return None
        return [int(y) for y in years]

    def validate(self) -> None:
        """
        Check the settings for consistency.

        Raises
        ------
        ConfigurationError
            On the first problem found.
        """
        for section in ("census", "boundaries", "cartogram", "output"):
            if not isinstance(self.data.get(section), dict):
                raise ConfigurationError(f"Missing config section '{section}'")

        census = self.census
        if not census.get("years"):
            raise ConfigurationError("census.years must list at least one year label")
        if float(census.get("unit_scale", 1)) <= 0:
            raise ConfigurationError("census.unit_scale must be positive")
        missing = {"region", "year", "value"} - set(census.get("columns", {}))
        if missing:
            raise ConfigurationError(f"census.columns is missing {sorted(missing)}")

        if not self.boundaries.get("name_column"):
            raise ConfigurationError("boundaries.name_column is required")

        cartogram = self.cartogram
        if int(cartogram.get("iterations", 15)) <= 0:
            raise ConfigurationError("cartogram.iterations must be positive")
        if cartogram.get("prepare", "adjust") not in PREPARE_MODES:
            raise ConfigurationError(
                f"cartogram.prepare must be one of {PREPARE_MODES}, "
                f"got {cartogram.get('prepare')!r}"
            )

        for animation in self.animations:
            if not animation.get("filename"):
                raise ConfigurationError("every output.animations entry needs a filename")
            if float(animation.get("fps", 0)) <= 0:
                raise ConfigurationError(
                    f"animation {animation['filename']} needs a positive fps"
                )

        try:
            census_years = {year_from_label(label) for label in census["years"]}
        except CensusDataError as e:
            raise ConfigurationError(f"census.years: {e}") from None
        try:
            static_years = self.static_years
        except (TypeError, ValueError):
            raise ConfigurationError("output.static_years must be a list of years") from None
        unknown = sorted(set(static_years or ()) - census_years)
        if unknown:
            raise ConfigurationError(
                f"output.static_years {unknown} are not among the census years"
            )

        for key in ("tween_frames", "hold_frames"):
            if int(self.output.get(key, 0)) < 0:
                raise ConfigurationError(f"output.{key} must not be negative")
