"""
Command-line interface for ppgspec.

Provides commands for computing PPG spectrograms from CSV files, running
inhibitory-bout bandwidth analysis, binning beat rates, and managing
configuration.
"""

import json
import logging
import tomllib

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from typing import Any

import click
import numpy as np

from ppgspec.analysis.beats import beat_rate_bins
from ppgspec.analysis.bouts import BoutAnalyzer
from ppgspec.analysis.fwhm import full_width_half_max
from ppgspec.analysis.intervals import calibration_intervals
from ppgspec.analysis.stitching import WholeRecordSpectrogramBuilder
from ppgspec.analysis.types import Spectrogram, SpectrogramConfig
from ppgspec.config import (
    SPECTROGRAM_SETTINGS,
    get_config_path,
    load_analysis_config,
    load_calibration_table,
    load_config,
    set_spectrogram_setting,
    unset_spectrogram_setting,
)
from ppgspec.constants import BeatRateConstants
from ppgspec.constants import BoutAnalysisConstants as BC
from ppgspec.constants import IntervalConstants, SpectralScale, TimestampPolicy
from ppgspec.exceptions import PPGSpecError
from ppgspec.logging_config import setup_logging
from ppgspec.sources.memory import InMemorySignalSource, InMemorySpectrogramStore
from ppgspec.sources.types import ElementRef

logger = logging.getLogger(__name__)

try:
    __version__ = get_version("ppgspec")
except PackageNotFoundError:
    __version__ = "dev"

CLI_ELEMENT = ElementRef(name="cli_signal")


def _read_csv_columns(path: str, expected: int) -> np.ndarray:
    """Read a numeric CSV with one header row into a (rows, expected) array."""
    try:
        data = np.loadtxt(path, delimiter=",", skiprows=1, ndmin=2)
    except ValueError as e:
        raise click.ClickException(f"Cannot parse {path}: {e}") from e

    if data.shape[1] != expected:
        raise click.ClickException(
            f"{path}: expected {expected} columns, found {data.shape[1]}"
        )
    return data


def _read_signal_csv(path: str) -> tuple[np.ndarray, np.ndarray]:
    """Read a time,value CSV; returns (values, timestamps)."""
    data = _read_csv_columns(path, 2)
    return data[:, 1], data[:, 0]


def _resolve_config(**overrides: Any) -> SpectrogramConfig:
    """Config file settings overridden by explicit CLI options."""
    config = load_analysis_config()
    update: dict[str, Any] = {
        key: value
        for key, value in overrides.items()
        if value is not None and key != "frequency_range"
    }

    fmin, fmax, fstep = overrides.get("frequency_range", (None, None, None))
    if fmin is not None or fmax is not None or fstep is not None:
        start = fmin if fmin is not None else config.frequencies[0]
        stop = fmax if fmax is not None else config.frequencies[-1]
        step = fstep if fstep is not None else (
            config.frequencies[1] - config.frequencies[0]
            if len(config.frequencies) > 1
            else start
        )
        if step <= 0 or stop < start:
            raise click.BadParameter("frequency range must satisfy fmin <= fmax, fstep > 0")
        count = int(round((stop - start) / step))
        update["frequencies"] = tuple(
            round(start + i * step, 10) for i in range(count + 1)
        )

    if "scale" in update:
        update["scale"] = SpectralScale(update["scale"])

    try:
        return SpectrogramConfig(**{**config.model_dump(), **update})
    except ValueError as e:
        raise click.ClickException(f"Invalid spectrogram settings: {e}") from e


def _build_spectrogram(
    signal_csv: str, config: SpectrogramConfig, chunked: bool
) -> Spectrogram:
    """Compute the spectrogram of a single-epoch CSV signal on its own clock."""
    values, timestamps = _read_signal_csv(signal_csv)

    source = InMemorySignalSource()
    source.add_epoch(CLI_ELEMENT, "epoch_001", values, timestamps, unified_clock=chunked)

    # One epoch: keep the file's clock so event times line up
    config = config.model_copy(update={"timestamp_policy": TimestampPolicy.EPOCH_CLOCK})

    builder = WholeRecordSpectrogramBuilder(source, config)
    return builder.build(
        CLI_ELEMENT,
        progress=lambda i, n, message: logger.debug(f"[{i}/{n}] {message}"),
    )


def _spectrogram_summary(spectrogram: Spectrogram) -> dict[str, Any]:
    summary: dict[str, Any] = {
        "n_frequencies": spectrogram.n_frequencies,
        "n_times": spectrogram.n_times,
        "frequency_range": [float(spectrogram.f[0]), float(spectrogram.f[-1])],
        "time_range": spectrogram.time_range,
        "peak_frequency": None,
        "fwhm": None,
    }
    if spectrogram.is_empty:
        return summary

    mean_spectrum = spectrogram.mean_spectrum()
    if np.any(np.isfinite(mean_spectrum)):
        summary["peak_frequency"] = float(spectrogram.f[np.nanargmax(mean_spectrum)])
        result = full_width_half_max(spectrogram.f, mean_spectrum)
        if result.succeeded:
            summary["fwhm"] = result.fwhm
    return summary


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2))


def version_callback(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    """Show version."""
    if not value or ctx.resilient_parsing:
        return
    click.echo(f"ppgspec, version {__version__}")
    ctx.exit()


@click.group()
@click.option(
    "--version",
    is_flag=True,
    callback=version_callback,
    expose_value=False,
    is_eager=True,
    help="Show version",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def cli(verbose: bool) -> None:
    """ppgspec: PPG spectral analysis tool"""
    setup_logging(verbose=verbose, console_format="%(levelname)s: %(message)s")


def spectrogram_options(func: Any) -> Any:
    """Options shared by commands that compute a spectrogram."""
    options = [
        click.option("--window-time", type=float, help="Window duration (seconds)"),
        click.option("--downsample", type=int, help="Keep every Nth window"),
        click.option("--fmin", type=float, help="Lowest frequency (Hz)"),
        click.option("--fmax", type=float, help="Highest frequency (Hz)"),
        click.option("--fstep", type=float, help="Frequency step (Hz)"),
        click.option(
            "--zscore-window",
            type=float,
            help="Rolling z-score window in seconds for --chunked (0 = whole signal)",
        ),
        click.option(
            "--scale",
            type=click.Choice([s.value for s in SpectralScale]),
            help="Output value scale",
        ),
        click.option(
            "--chunked",
            is_flag=True,
            help="Treat time as a shared clock: rolling z-score and split at gaps",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@cli.command()
@click.argument("signal_csv", type=click.Path(exists=True, dir_okay=False))
@spectrogram_options
def spectrogram(
    signal_csv: str,
    window_time: float | None,
    downsample: int | None,
    fmin: float | None,
    fmax: float | None,
    fstep: float | None,
    zscore_window: float | None,
    scale: str | None,
    chunked: bool,
) -> None:
    """Compute the spectrogram of a time,value CSV and print a summary."""
    config = _resolve_config(
        window_time=window_time,
        downsample=downsample,
        zscore_window=zscore_window,
        scale=scale,
        frequency_range=(fmin, fmax, fstep),
    )

    try:
        result = _build_spectrogram(signal_csv, config, chunked)
    except PPGSpecError as e:
        raise click.ClickException(str(e)) from e

    if result.is_empty:
        logger.warning(f"Signal in {signal_csv} is shorter than one window")
    _echo_json(_spectrogram_summary(result))


@cli.command()
@click.argument("signal_csv", type=click.Path(exists=True, dir_okay=False))
@click.argument("bouts_csv", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--skip",
    type=float,
    default=BC.DEFAULT_SKIP_SECONDS,
    show_default=True,
    help="Gap between event and window (seconds)",
)
@click.option(
    "--time-window",
    type=float,
    default=BC.DEFAULT_TIME_WINDOW_SECONDS,
    show_default=True,
    help="Window duration (seconds)",
)
@spectrogram_options
def bouts(
    signal_csv: str,
    bouts_csv: str,
    skip: float,
    time_window: float,
    window_time: float | None,
    downsample: int | None,
    fmin: float | None,
    fmax: float | None,
    fstep: float | None,
    zscore_window: float | None,
    scale: str | None,
    chunked: bool,
) -> None:
    """
    Spectral bandwidth before bout onsets and after bout offsets.

    BOUTS_CSV holds onset,offset times on the same clock as SIGNAL_CSV.
    """
    config = _resolve_config(
        window_time=window_time,
        downsample=downsample,
        zscore_window=zscore_window,
        scale=scale,
        frequency_range=(fmin, fmax, fstep),
    )
    events = _read_csv_columns(bouts_csv, 2)

    try:
        store = InMemorySpectrogramStore()
        store.add(CLI_ELEMENT, _build_spectrogram(signal_csv, config, chunked))
        result = BoutAnalyzer(store).analyze(
            CLI_ELEMENT, events[:, 0], events[:, 1], skip, time_window
        )
    except PPGSpecError as e:
        raise click.ClickException(str(e)) from e

    _echo_json(result.to_dict())


@cli.command()
@click.argument("table")
@click.option(
    "--width",
    type=float,
    default=IntervalConstants.DEFAULT_WIDTH_SECONDS,
    show_default=True,
    help="Total interval width (seconds)",
)
def intervals(table: str, width: float) -> None:
    """Print intervals around the centers of a configured calibration table."""
    try:
        points = load_calibration_table(table)
        result = calibration_intervals(points, width)
    except KeyError as e:
        raise click.ClickException(e.args[0]) from e
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    if not result:
        click.echo(f"Calibration table '{table}' is empty.")
        return

    for interval in result:
        click.echo(f"{interval.label}\t{interval.start}\t{interval.end}")


@cli.command("beat-rate")
@click.argument("beats_csv", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--delta-t",
    type=float,
    default=BeatRateConstants.DELTA_T_SECONDS,
    show_default=True,
    help="Spacing between bin centers (seconds)",
)
@click.option(
    "--window",
    type=float,
    default=BeatRateConstants.WINDOW_SECONDS,
    show_default=True,
    help="Counting window width (seconds)",
)
def beat_rate(beats_csv: str, delta_t: float, window: float) -> None:
    """
    Binned beat rate from a CSV of beat times.

    BEATS_CSV holds one beat time per row (seconds) under a header row.
    """
    beat_times = _read_csv_columns(beats_csv, 1)[:, 0]

    try:
        rates, centers = beat_rate_bins(beat_times, delta_t=delta_t, window=window)
    except PPGSpecError as e:
        raise click.ClickException(str(e)) from e

    _echo_json({"bin_centers": centers.tolist(), "rates": rates.tolist()})


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


def _parse_setting_value(raw: str) -> Any:
    """Interpret a command-line value as a TOML scalar, falling back to a string."""
    try:
        return tomllib.loads(f"value = {raw}")["value"]
    except tomllib.TOMLDecodeError:
        return raw


@config.command("set")
@click.argument("key", type=click.Choice(SPECTROGRAM_SETTINGS))
@click.argument("value")
def set_setting_cmd(key: str, value: str) -> None:
    """Set a [spectrogram] setting."""
    parsed = _parse_setting_value(value)
    try:
        set_spectrogram_setting(key, parsed)
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"✓ {key} = {parsed!r}")
    click.echo(f"  Config: {get_config_path()}")


@config.command("unset")
@click.argument("key", type=click.Choice(SPECTROGRAM_SETTINGS))
def unset_setting_cmd(key: str) -> None:
    """Remove a [spectrogram] setting."""
    current = load_config().get("spectrogram", {})
    if key in current:
        unset_spectrogram_setting(key)
        click.echo(f"✓ Removed {key}")
    else:
        click.echo(f"{key} was not configured.")


@config.command("show")
def show_config_cmd() -> None:
    """Show all configuration settings."""
    config_path = get_config_path()
    if not config_path.exists():
        click.echo(f"No config file: {config_path}")
    else:
        click.echo(f"Config file: {config_path}\n")
        config_data = load_config()
        if not config_data:
            click.echo("Configuration is empty.")
        for section in ("spectrogram", "logging"):
            if section in config_data:
                click.echo(f"  [{section}]")
                for key, value in config_data[section].items():
                    click.echo(f"    {key} = {value!r}")
        for name, records in config_data.get("calibration", {}).items():
            click.echo(f"  [calibration.{name}] {len(records)} points")

    effective = load_analysis_config()
    click.echo("\nEffective spectrogram settings:")
    click.echo(
        f"  frequencies = {effective.frequencies[0]}..{effective.frequencies[-1]} Hz "
        f"({len(effective.frequencies)} values)"
    )
    for key in ("window_time", "downsample", "zscore_window", "gap_threshold_factor"):
        click.echo(f"  {key} = {getattr(effective, key)}")
    click.echo(f"  scale = {effective.scale.value}")
    click.echo(f"  timestamp_policy = {effective.timestamp_policy.value}")


def main() -> None:
    """Entry point for ``python -m ppgspec``."""
    cli()


if __name__ == "__main__":
    main()
