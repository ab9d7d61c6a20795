from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Pitch(_Frozen):
    midi_number: int
    diatonic_step: int
    alter_semitones: float = 0.0


class NoteEvent(_Frozen):
    start_beat: float
    end_beat: float
    duration_beat: float
    start_sec: float
    end_sec: float
    duration_sec: float
    is_rest: bool = False
    is_grace: bool = False
    is_chord: bool = False
    pitch: Pitch | None = None
    part_index: int = 0
    part_name: str = ""
    voice_id: str = "1"
    staff_id: str = "1"
    measure_number: str = ""

    @property
    def midi_number(self) -> int | None:
        return self.pitch.midi_number if self.pitch is not None else None


class MeasureMarker(_Frozen):
    number: str
    beat: float
    sec: float = 0.0


class TempoEvent(_Frozen):
    beat: float
    tempo: float


class TempoPoint(_Frozen):
    beat: float
    tempo: float


class TempoTrack(_Frozen):
    points: tuple[TempoPoint, ...]


class Score(_Frozen):
    title: str | None = None
    part_name: str
    part_names: tuple[str, ...]
    notes: tuple[NoteEvent, ...]
    measure_markers: tuple[MeasureMarker, ...]
    tempo_track: TempoTrack
    total_duration_sec: float

    @property
    def sounding_notes(self) -> list[NoteEvent]:
        return [n for n in self.notes if not n.is_rest and n.pitch is not None]
