from __future__ import annotations

from dataclasses import dataclass, field

from scoreline.common.model import MeasureMarker, Pitch, TempoEvent


@dataclass
class DraftNote:
    """A note placed in beat time; seconds are filled in by the resolver."""

    duration_beat: float
    start_beat: float = 0.0
    is_rest: bool = False
    is_grace: bool = False
    is_chord: bool = False
    pitch: Pitch | None = None
    voice_id: str = "1"
    staff_id: str = "1"
    measure_number: str = ""

    @property
    def end_beat(self) -> float:
        return self.start_beat + self.duration_beat


@dataclass
class PartTimeline:
    """Everything the walker produces for one part."""

    notes: list[DraftNote] = field(default_factory=list)
    tempo_events: list[TempoEvent] = field(default_factory=list)
    markers: list[MeasureMarker] = field(default_factory=list)
