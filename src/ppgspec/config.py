"""Configuration management for ppgspec."""

import logging
import os
import tomllib

from pathlib import Path
from typing import Any

import tomli_w

from pydantic import ValidationError

from ppgspec.analysis.intervals import CalibrationPoint
from ppgspec.analysis.types import SpectrogramConfig
from ppgspec.constants import DEFAULT_CONFIG_DIR, DEFAULT_CONFIG_FILE
from ppgspec.constants import SpectrogramConstants as SC

logger = logging.getLogger(__name__)

SPECTROGRAM_SETTINGS = (
    "frequencies_start",
    "frequencies_stop",
    "frequencies_step",
    "window_time",
    "downsample",
    "zscore_window",
    "scale",
    "gap_threshold_factor",
    "timestamp_policy",
)


def get_config_path() -> Path:
    """
    Get the path to the configuration file.

    Returns:
        Path to ~/.ppgspec/config.toml
    """
    return DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILE


def load_config() -> dict[str, Any]:
    """
    Load configuration from TOML file.

    Returns:
        Configuration dictionary. Returns empty dict if file doesn't exist
        or is corrupted.
    """
    config_path = get_config_path()

    if not config_path.exists():
        return {}

    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except Exception as e:
        logger.warning(f"Failed to load config from {config_path}: {e}")
        logger.warning("Treating config as empty. Fix or delete the file to resolve.")
        return {}


def save_config(config: dict[str, Any]) -> None:
    """
    Save configuration to TOML file using atomic write.

    Creates the parent directory if it doesn't exist.
    Uses temp file + rename for atomic operation.

    Args:
        config: Configuration dictionary to save

    Raises:
        PermissionError: If directory cannot be created or file cannot be written
    """
    config_path = get_config_path()

    config_dir = config_path.parent
    try:
        os.makedirs(config_dir, exist_ok=True)
    except PermissionError as e:
        raise PermissionError(
            f"Cannot create config directory {config_dir}: {e}"
        ) from e

    temp_path = config_path.with_suffix(".toml.tmp")

    try:
        with open(temp_path, "wb") as f:
            tomli_w.dump(config, f)

        os.replace(temp_path, config_path)

    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise


def _frequency_range(start: float, stop: float, step: float) -> tuple[float, ...]:
    if step <= 0:
        raise ValueError(f"frequencies_step must be positive, got {step}")
    count = int(round((stop - start) / step))
    return tuple(round(start + i * step, 10) for i in range(count + 1))


def spectrogram_config_from_settings(settings: dict[str, Any]) -> SpectrogramConfig:
    """
    Build a SpectrogramConfig from a [spectrogram] settings table.

    Frequencies are given as start/stop/step; any missing part falls back to
    the default 0.1-10 Hz grid.

    Raises:
        ValueError: If a setting is invalid
    """
    unknown = set(settings) - set(SPECTROGRAM_SETTINGS)
    if unknown:
        raise ValueError(f"Unknown spectrogram settings: {', '.join(sorted(unknown))}")

    fields: dict[str, Any] = {
        key: settings[key]
        for key in (
            "window_time",
            "downsample",
            "zscore_window",
            "scale",
            "gap_threshold_factor",
            "timestamp_policy",
        )
        if key in settings
    }

    if any(key.startswith("frequencies_") for key in settings):
        fields["frequencies"] = _frequency_range(
            float(settings.get("frequencies_start", SC.FREQUENCY_START)),
            float(settings.get("frequencies_stop", SC.FREQUENCY_STOP)),
            float(settings.get("frequencies_step", SC.FREQUENCY_STEP)),
        )

    return SpectrogramConfig(**fields)


def load_analysis_config() -> SpectrogramConfig:
    """
    Load spectrogram settings from the config file.

    Returns:
        SpectrogramConfig; defaults if the section is missing or invalid
    """
    settings = load_config().get("spectrogram", {})
    if not isinstance(settings, dict):
        logger.warning("Ignoring [spectrogram] config: expected a table")
        return SpectrogramConfig()

    try:
        return spectrogram_config_from_settings(settings)
    except (ValueError, ValidationError) as e:
        logger.warning(f"Invalid [spectrogram] config, using defaults: {e}")
        return SpectrogramConfig()


def set_spectrogram_setting(key: str, value: Any) -> None:
    """
    Set one [spectrogram] setting in the config file.

    Args:
        key: Setting name (one of SPECTROGRAM_SETTINGS)
        value: New value

    Raises:
        ValueError: If the key is unknown or the resulting config is invalid
    """
    if key not in SPECTROGRAM_SETTINGS:
        raise ValueError(
            f"Unknown setting '{key}'. Valid settings: {', '.join(SPECTROGRAM_SETTINGS)}"
        )

    config = load_config()
    section = dict(config.get("spectrogram", {}))
    section[key] = value

    try:
        spectrogram_config_from_settings(section)
    except ValidationError as e:
        raise ValueError(f"Invalid value for {key}: {e}") from e

    config["spectrogram"] = section
    save_config(config)


def unset_spectrogram_setting(key: str) -> None:
    """
    Remove one [spectrogram] setting from the config file.

    If this was the only setting in the section, removes the section.
    If config becomes empty, deletes the config file.
    """
    config = load_config()

    if "spectrogram" in config and key in config["spectrogram"]:
        del config["spectrogram"][key]

        if not config["spectrogram"]:
            del config["spectrogram"]

        if not config:
            config_path = get_config_path()
            if config_path.exists():
                config_path.unlink()
        else:
            save_config(config)


def load_calibration_table(name: str) -> list[CalibrationPoint]:
    """
    Load a calibration table from the [calibration] config section.

    A table is an array of {center, label} records, e.g.:

        [[calibration.bath_temperature]]
        center = 2025-08-19T00:00:00
        label = 11

    Args:
        name: Table name under [calibration]

    Returns:
        Calibration points in file order

    Raises:
        KeyError: If the table is not configured
        ValueError: If a record is malformed
    """
    tables = load_config().get("calibration", {})
    if name not in tables:
        available = ", ".join(sorted(tables)) or "none"
        raise KeyError(f"Calibration table '{name}' not found (available: {available})")

    try:
        return [CalibrationPoint(**record) for record in tables[name]]
    except (TypeError, ValidationError) as e:
        raise ValueError(f"Malformed calibration table '{name}': {e}") from e
