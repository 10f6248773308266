"""In-memory implementations of the source and store interfaces."""

import logging

import numpy as np

from ppgspec.analysis.types import Spectrogram
from ppgspec.exceptions import AmbiguousMatchError, NotFoundError
from ppgspec.sources.base import SignalSource, SpectrogramStore
from ppgspec.sources.types import ElementRef, EpochInfo

logger = logging.getLogger(__name__)


class InMemorySignalSource(SignalSource):
    """
    Signal source backed by arrays held in memory.

    Each epoch is stored with timestamps on its own local clock. When an
    element is added with unified_clock=True, the epoch timestamps are
    treated as a shared clock and read_signal(epoch_id=None) concatenates
    every epoch in that range.

    Example:
        >>> source = InMemorySignalSource()
        >>> source.add_epoch(ref, "epoch_001", values, timestamps)
        >>> values, t = source.read_signal(ref, "epoch_001", -np.inf, np.inf)
    """

    def __init__(self) -> None:
        self._epochs: dict[ElementRef, list[tuple[EpochInfo, np.ndarray, np.ndarray]]] = {}

    def add_epoch(
        self,
        element_ref: ElementRef,
        epoch_id: str,
        values: np.ndarray,
        timestamps: np.ndarray,
        unified_clock: bool = False,
    ) -> EpochInfo:
        """Register one epoch of samples for an element."""
        t = np.asarray(timestamps, dtype=np.float64)
        x = np.asarray(values, dtype=np.float64)
        if t.shape != x.shape:
            raise ValueError("values and timestamps must have the same shape")

        info = EpochInfo(
            epoch_id=epoch_id,
            t0=float(t[0]) if t.size else 0.0,
            t1=float(t[-1]) if t.size else 0.0,
            has_unified_clock=unified_clock,
        )
        self._epochs.setdefault(element_ref, []).append((info, x, t))
        return info

    def _entries(
        self, element_ref: ElementRef
    ) -> list[tuple[EpochInfo, np.ndarray, np.ndarray]]:
        entries = self._epochs.get(element_ref)
        if not entries:
            raise NotFoundError(f"Element {element_ref} not found", element_ref)
        return entries

    def list_epochs(self, element_ref: ElementRef) -> list[EpochInfo]:
        return [info for info, _, _ in self._entries(element_ref)]

    def read_signal(
        self,
        element_ref: ElementRef,
        epoch_id: str | None,
        t0: float,
        t1: float,
    ) -> tuple[np.ndarray, np.ndarray]:
        entries = self._entries(element_ref)

        if epoch_id is None:
            selected = entries
        else:
            selected = [entry for entry in entries if entry[0].epoch_id == epoch_id]
            if not selected:
                raise NotFoundError(
                    f"Epoch {epoch_id} not found for element {element_ref}",
                    element_ref,
                )

        values = np.concatenate([x for _, x, _ in selected])
        timestamps = np.concatenate([t for _, _, t in selected])
        mask = (timestamps >= t0) & (timestamps <= t1)

        logger.debug(
            f"Read {int(mask.sum())} samples from {element_ref} "
            f"(epoch={epoch_id}, range=[{t0}, {t1}])"
        )
        return values[mask], timestamps[mask]


class InMemorySpectrogramStore(SpectrogramStore):
    """Spectrogram store backed by a dict of element -> spectrograms."""

    def __init__(self) -> None:
        self._spectrograms: dict[ElementRef, list[Spectrogram]] = {}

    def add(self, element_ref: ElementRef, spectrogram: Spectrogram) -> None:
        self._spectrograms.setdefault(element_ref, []).append(spectrogram)

    def find_spectrogram(self, element_ref: ElementRef) -> Spectrogram:
        matches = self._spectrograms.get(element_ref, [])
        if not matches:
            raise NotFoundError(
                f"No spectrogram stored for element {element_ref}", element_ref
            )
        if len(matches) > 1:
            raise AmbiguousMatchError(
                f"Found {len(matches)} spectrograms for element {element_ref}",
                element_ref,
            )
        return matches[0]
