"""Unit tests for element references and the in-memory source/store."""

import numpy as np
import pytest

from pydantic import ValidationError

from ppgspec.analysis.types import Spectrogram
from ppgspec.exceptions import AmbiguousMatchError, NotFoundError
from ppgspec.sources import (
    InMemorySignalSource,
    InMemorySpectrogramStore,
    missing_epochs,
)
from ppgspec.sources.types import ElementRef, EpochInfo


class TestElementRef:
    """Test element identification."""

    def test_for_record(self):
        ref = ElementRef.for_record("heart")

        assert ref.name == "ppg_heart_lp_whole"
        assert ref.reference == 1
        assert str(ref) == "ppg_heart_lp_whole|1"

    def test_hashable_and_equal_by_value(self):
        assert ElementRef(name="a", reference=2) == ElementRef(name="a", reference=2)
        assert len({ElementRef(name="a"), ElementRef(name="a")}) == 1

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            ElementRef(name="")


class TestEpochInfo:
    def test_duration(self):
        assert EpochInfo(epoch_id="e1", t0=10.0, t1=70.0).duration == 60.0

    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationError, match="t1"):
            EpochInfo(epoch_id="e1", t0=10.0, t1=5.0)


class TestInMemorySignalSource:
    """Test the array-backed signal source."""

    @pytest.fixture
    def source(self):
        source = InMemorySignalSource()
        ref = ElementRef(name="ppg")
        source.add_epoch(ref, "e1", np.arange(5.0), np.arange(5.0))
        source.add_epoch(ref, "e2", np.arange(5.0) + 10, np.arange(5.0) + 100)
        return source

    def test_list_epochs(self, source):
        epochs = source.list_epochs(ElementRef(name="ppg"))

        assert [e.epoch_id for e in epochs] == ["e1", "e2"]
        assert epochs[1].t0 == 100.0
        assert epochs[1].t1 == 104.0
        assert not epochs[0].has_unified_clock

    def test_read_epoch_range(self, source):
        values, timestamps = source.read_signal(
            ElementRef(name="ppg"), "e2", 101.0, 103.0
        )

        np.testing.assert_array_equal(timestamps, [101.0, 102.0, 103.0])
        np.testing.assert_array_equal(values, [11.0, 12.0, 13.0])

    def test_read_all_epochs(self, source):
        values, _ = source.read_signal(ElementRef(name="ppg"), None, -np.inf, np.inf)
        assert len(values) == 10

    def test_unknown_element(self, source):
        with pytest.raises(NotFoundError, match="not found"):
            source.list_epochs(ElementRef(name="other"))

    def test_unknown_epoch(self, source):
        with pytest.raises(NotFoundError, match="Epoch e9"):
            source.read_signal(ElementRef(name="ppg"), "e9", 0.0, 1.0)

    def test_shape_mismatch_rejected(self):
        with pytest.raises(ValueError, match="same shape"):
            InMemorySignalSource().add_epoch(
                ElementRef(name="ppg"), "e1", np.arange(3.0), np.arange(4.0)
            )


class TestInMemorySpectrogramStore:
    """Test spectrogram lookup."""

    def test_find(self):
        store = InMemorySpectrogramStore()
        ref = ElementRef(name="ppg")
        spec = Spectrogram.empty([1.0, 2.0])
        store.add(ref, spec)

        assert store.find_spectrogram(ref) is spec

    def test_missing(self):
        with pytest.raises(NotFoundError) as exc_info:
            InMemorySpectrogramStore().find_spectrogram(ElementRef(name="ppg"))

        assert exc_info.value.element_ref == ElementRef(name="ppg")

    def test_ambiguous_is_not_found_class(self):
        store = InMemorySpectrogramStore()
        ref = ElementRef(name="ppg")
        store.add(ref, Spectrogram.empty([1.0]))
        store.add(ref, Spectrogram.empty([1.0]))

        with pytest.raises(AmbiguousMatchError):
            store.find_spectrogram(ref)
        with pytest.raises(NotFoundError):
            store.find_spectrogram(ref)


class TestMissingEpochs:
    """Test detection of epochs a derived element has not caught up with."""

    @pytest.fixture
    def source(self):
        source = InMemorySignalSource()
        raw = ElementRef(name="ppg_heart")
        for epoch_id in ("epoch_003", "epoch_001", "epoch_002"):
            source.add_epoch(raw, epoch_id, np.arange(5.0), np.arange(5.0))
        source.add_epoch(
            ElementRef(name="ppg_heart_spec"), "epoch_001", np.zeros(2), np.arange(2.0)
        )
        return source

    def test_new_epochs_reported_sorted(self, source):
        missing = missing_epochs(
            source, ElementRef(name="ppg_heart"), ElementRef(name="ppg_heart_spec")
        )
        assert missing == ["epoch_002", "epoch_003"]

    def test_up_to_date(self, source):
        ref = ElementRef(name="ppg_heart")
        assert missing_epochs(source, ref, ref) == []

    def test_absent_derived_element_misses_everything(self, source):
        missing = missing_epochs(
            source, ElementRef(name="ppg_heart"), ElementRef(name="ppg_gut_spec")
        )
        assert missing == ["epoch_001", "epoch_002", "epoch_003"]

    def test_absent_element_raises(self, source):
        with pytest.raises(NotFoundError):
            missing_epochs(
                source, ElementRef(name="ppg_gut"), ElementRef(name="ppg_heart")
            )
