"""
ppgspec: time-aligned spectral analysis of PPG heart and gut recordings.

Builds whole-record spectrograms from multi-epoch signals and measures
spectral bandwidth (FWHM) around inhibitory-bout onsets and offsets.
"""

from typing import Any

__all__ = ["cli"]


def __getattr__(name: str) -> Any:
    """Lazy load the CLI to keep library imports free of click."""
    if name == "cli":
        from ppgspec.cli import cli

        return cli
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
