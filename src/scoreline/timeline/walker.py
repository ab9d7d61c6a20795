from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from enum import Enum

from scoreline.common.config import ResolverSettings
from scoreline.common.logging import log
from scoreline.common.model import MeasureMarker, Pitch, TempoEvent
from scoreline.timeline.duration import resolve_duration
from scoreline.timeline.events import DraftNote, PartTimeline
from scoreline.timeline.grace import GraceBuffer
from scoreline.timeline.xmlutil import safe_float, safe_int, text_of

STEP_TO_INDEX = {"C": 0, "D": 1, "E": 2, "F": 3, "G": 4, "A": 5, "B": 6}
STEP_TO_SEMITONE = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}


class ElementKind(Enum):
    ATTRIBUTES = "attributes"
    DIRECTION = "direction"
    SOUND = "sound"
    BACKUP = "backup"
    FORWARD = "forward"
    NOTE = "note"
    IGNORED = "ignored"

    @classmethod
    def of(cls, el: ET.Element) -> ElementKind:
        try:
            return cls(el.tag)
        except ValueError:
            return cls.IGNORED


@dataclass
class PartCursor:
    """Running position of the walk through one part."""

    beat: float = 0.0
    divisions: float = 1.0
    last_chord_start: float = 0.0
    measure_start: float = 0.0
    measure_max: float = 0.0
    measure_number: str = ""

    def begin_measure(self, number: str) -> None:
        self.measure_start = self.beat
        self.measure_max = self.beat
        self.measure_number = number

    def move_to(self, beat: float) -> None:
        self.beat = max(self.measure_start, beat)
        self.measure_max = max(self.measure_max, self.beat)


def decode_pitch(note_el: ET.Element) -> Pitch:
    step = (text_of(note_el, "pitch/step") or "C").upper()
    if step not in STEP_TO_INDEX:
        log.debug("pitch_step_unknown", step=step)
        step = "C"
    alter = safe_float(text_of(note_el, "pitch/alter"), 0.0) or 0.0
    octave = safe_int(text_of(note_el, "pitch/octave"), 4)
    midi = round((octave + 1) * 12 + STEP_TO_SEMITONE[step] + alter)
    return Pitch(
        midi_number=midi,
        diatonic_step=octave * 7 + STEP_TO_INDEX[step],
        alter_semitones=alter,
    )


def _tempo_value(el: ET.Element) -> float | None:
    """Tempo carried by a <direction> or a bare <sound>; None if absent or unusable."""
    raw: str | None = None
    sound = el if el.tag == "sound" else el.find(".//sound[@tempo]")
    if sound is not None:
        raw = (sound.get("tempo") or "").strip() or None
    if raw is None and el.tag == "direction":
        raw = text_of(el, ".//metronome/per-minute")
    if raw is None:
        return None
    tempo = safe_float(raw)
    if tempo is None or tempo <= 0:
        log.debug("tempo_ignored", raw=raw)
        return None
    return tempo


class PartWalker:
    """
    Walks the measures of one <part> and places its notes in beat time.

    Parts are walked independently; tempo events are collected here but only
    turned into a track once every part has been walked.
    """

    def __init__(self, settings: ResolverSettings | None = None) -> None:
        self.settings = settings or ResolverSettings()
        self.cursor = PartCursor()
        self.graces = GraceBuffer()
        self.result = PartTimeline()

    def walk(self, part_el: ET.Element) -> PartTimeline:
        for measure in part_el.findall("measure"):
            self._walk_measure(measure)
        return self.result

    def _walk_measure(self, measure: ET.Element) -> None:
        cur = self.cursor
        cur.begin_measure(measure.get("number") or "")
        self.result.markers.append(MeasureMarker(number=cur.measure_number, beat=cur.beat))

        for el in measure:
            match ElementKind.of(el):
                case ElementKind.ATTRIBUTES:
                    self._on_attributes(el)
                case ElementKind.DIRECTION | ElementKind.SOUND:
                    self._on_tempo(el)
                case ElementKind.BACKUP:
                    self._on_shift(el, -1.0)
                case ElementKind.FORWARD:
                    self._on_shift(el, 1.0)
                case ElementKind.NOTE:
                    self._on_note(el)
                case ElementKind.IGNORED:
                    pass

        self._flush_graces()
        cur.beat = cur.measure_max

    def _on_attributes(self, el: ET.Element) -> None:
        raw = text_of(el, "divisions")
        if raw is None:
            return
        divisions = safe_float(raw)
        if divisions is None or divisions <= 0:
            log.debug("divisions_fallback", raw=raw)
            divisions = 1.0
        self.cursor.divisions = divisions

    def _on_tempo(self, el: ET.Element) -> None:
        tempo = _tempo_value(el)
        if tempo is not None:
            self.result.tempo_events.append(TempoEvent(beat=self.cursor.beat, tempo=tempo))

    def _on_shift(self, el: ET.Element, sign: float) -> None:
        self._flush_graces()
        ticks = safe_float(text_of(el, "duration"), 0.0) or 0.0
        self.cursor.move_to(self.cursor.beat + sign * ticks / self.cursor.divisions)

    def _on_note(self, el: ET.Element) -> None:
        cur = self.cursor
        is_rest = el.find("rest") is not None
        is_chord = el.find("chord") is not None
        is_grace = el.find("grace") is not None

        if is_grace:
            # without an explicit <duration> a grace note gets the fixed fallback;
            # its written <type> is nominal
            duration = resolve_duration(
                el, cur.divisions, self.settings.grace_fallback_beat, use_type=False
            )
        else:
            duration = resolve_duration(el, cur.divisions)

        note = DraftNote(
            duration_beat=duration,
            is_rest=is_rest,
            is_grace=is_grace,
            is_chord=is_chord,
            pitch=None if is_rest else decode_pitch(el),
            voice_id=text_of(el, "voice") or "1",
            staff_id=text_of(el, "staff") or "1",
            measure_number=cur.measure_number,
        )

        if is_grace:
            self.graces.add(note)
            return

        if is_chord:
            note.start_beat = cur.last_chord_start
        else:
            self._flush_graces()
            note.start_beat = cur.beat
            cur.last_chord_start = cur.beat
            cur.move_to(cur.beat + duration)
        self.result.notes.append(note)

    def _flush_graces(self) -> None:
        if self.graces:
            placed = self.graces.flush(self.cursor.beat, self.cursor.measure_start)
            self.result.notes.extend(placed)


def walk_part(part_el: ET.Element, settings: ResolverSettings | None = None) -> PartTimeline:
    return PartWalker(settings).walk(part_el)
