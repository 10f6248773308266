"""Types shared by signal sources and spectrogram stores."""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ElementRef(BaseModel):
    """
    Identifies a recorded element (a sensor-derived signal).

    Attributes:
        name: Element name, e.g. "ppg_heart_lp_whole"
        reference: Reference number distinguishing same-named elements
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, description="Element name")
    reference: int = Field(default=1, ge=0, description="Element reference number")

    @classmethod
    def for_record(cls, record_name: str, reference: int = 1) -> "ElementRef":
        """Element holding the whole-record low-pass PPG for 'heart' or 'pylorus'."""
        return cls(name=f"ppg_{record_name}_lp_whole", reference=reference)

    def __str__(self) -> str:
        return f"{self.name}|{self.reference}"


class EpochInfo(BaseModel):
    """
    One contiguous recording segment of an element.

    Attributes:
        epoch_id: Epoch identifier
        t0: Start of the epoch on its local clock (seconds)
        t1: End of the epoch on its local clock (seconds)
        has_unified_clock: Whether a clock shared by all epochs is available
    """

    model_config = ConfigDict(frozen=True)

    epoch_id: str = Field(description="Epoch identifier")
    t0: float = Field(description="Local start time (seconds)")
    t1: float = Field(description="Local end time (seconds)")
    has_unified_clock: bool = Field(
        default=False, description="Epoch is on a clock shared across the record"
    )

    @model_validator(mode="after")
    def _check_range(self) -> "EpochInfo":
        if self.t1 < self.t0:
            raise ValueError(f"Epoch {self.epoch_id}: t1 ({self.t1}) < t0 ({self.t0})")
        return self

    @property
    def duration(self) -> float:
        return self.t1 - self.t0
