"""
Interfaces for the collaborators the analysis core reads from.

The core never touches files or databases directly. Signal reads and
spectrogram lookups go through these abstract classes, which adapters for a
particular acquisition system or document store implement.
"""

import logging

from abc import ABC, abstractmethod
from collections.abc import Callable

import numpy as np

from ppgspec.analysis.types import Spectrogram
from ppgspec.exceptions import AmbiguousMatchError, NotFoundError
from ppgspec.sources.types import ElementRef, EpochInfo

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]


class SignalSource(ABC):
    """
    Provides raw signal reads for recorded elements.

    Usage Example:
        class NpzSignalSource(SignalSource):
            def list_epochs(self, element_ref):
                return [EpochInfo(epoch_id="e1", t0=0.0, t1=3600.0)]

            def read_signal(self, element_ref, epoch_id, t0, t1):
                return values, timestamps
    """

    @abstractmethod
    def list_epochs(self, element_ref: ElementRef) -> list[EpochInfo]:
        """
        List the element's epochs in recording order.

        Raises:
            NotFoundError: If the element does not exist
            AmbiguousMatchError: If more than one element matches
        """

    @abstractmethod
    def read_signal(
        self,
        element_ref: ElementRef,
        epoch_id: str | None,
        t0: float,
        t1: float,
    ) -> tuple[np.ndarray, np.ndarray]:
        """
        Read samples with timestamps in [t0, t1].

        Args:
            element_ref: Element to read
            epoch_id: Epoch to read on its local clock, or None to read on
                the clock shared by all epochs
            t0: Window start (seconds)
            t1: Window end (seconds); may be inf

        Returns:
            Tuple of (values, timestamps)

        Raises:
            NotFoundError: If the element or epoch is unmatched
        """


class SpectrogramStore(ABC):
    """Looks up previously computed spectrograms by element."""

    @abstractmethod
    def find_spectrogram(self, element_ref: ElementRef) -> Spectrogram:
        """
        Return the stored spectrogram for an element.

        Raises:
            NotFoundError: If no spectrogram is stored for the element
            AmbiguousMatchError: If more than one spectrogram matches
        """


def missing_epochs(
    source: SignalSource, element_ref: ElementRef, derived_ref: ElementRef
) -> list[str]:
    """
    Epoch ids present for element_ref but not yet for derived_ref.

    Used to decide whether a derived element (for example a stored
    spectrogram's element) must be recomputed after new epochs were
    recorded. A derived element that does not exist yet is missing every
    epoch.

    Returns:
        Sorted list of missing epoch ids (empty when up to date)

    Raises:
        NotFoundError: If element_ref itself does not exist
        AmbiguousMatchError: If either reference matches more than one element
    """
    wanted = {info.epoch_id for info in source.list_epochs(element_ref)}
    try:
        present = {info.epoch_id for info in source.list_epochs(derived_ref)}
    except AmbiguousMatchError:
        raise
    except NotFoundError:
        logger.debug(f"Derived element {derived_ref} not found; all epochs missing")
        present = set()
    return sorted(wanted - present)
