"""
Collaborator interfaces for signal reads and spectrogram lookup.
"""

from ppgspec.sources.base import (
    ProgressCallback,
    SignalSource,
    SpectrogramStore,
    missing_epochs,
)
from ppgspec.sources.memory import InMemorySignalSource, InMemorySpectrogramStore
from ppgspec.sources.types import ElementRef, EpochInfo

__all__ = [
    "ElementRef",
    "EpochInfo",
    "InMemorySignalSource",
    "InMemorySpectrogramStore",
    "ProgressCallback",
    "SignalSource",
    "SpectrogramStore",
    "missing_epochs",
]
