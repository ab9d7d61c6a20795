from __future__ import annotations

import xml.etree.ElementTree as ET

from scoreline.common.config import ResolverSettings
from scoreline.common.errors import ScoreResolutionError
from scoreline.common.logging import log
from scoreline.common.model import MeasureMarker, NoteEvent, Score, TempoEvent, TempoTrack
from scoreline.timeline.events import DraftNote, PartTimeline
from scoreline.timeline.tempo import beat_to_sec, build_tempo_track
from scoreline.timeline.walker import walk_part
from scoreline.timeline.xmlutil import text_of

UNKNOWN_PART = "Unknown Part"


def _parse_document(document: str | bytes) -> ET.Element:
    try:
        root = ET.fromstring(document)
    except ET.ParseError as err:
        raise ScoreResolutionError(f"MusicXML parse failed: {err}") from err
    if root.tag != "score-partwise":
        raise ScoreResolutionError(
            f"Expected a score-partwise document, got <{root.tag}>"
        )
    return root


def _score_title(root: ET.Element) -> str | None:
    return text_of(root, "work/work-title") or text_of(root, "movement-title")


def _part_names(root: ET.Element, parts: list[ET.Element]) -> list[str]:
    by_id: dict[str, str] = {}
    for sp in root.findall("part-list/score-part"):
        pid = sp.get("id")
        name = text_of(sp, "part-name")
        if pid and name:
            by_id[pid] = name
    return [by_id.get(p.get("id") or "", UNKNOWN_PART) for p in parts]


def _to_event(draft: DraftNote, track: TempoTrack, part_index: int, part_name: str) -> NoteEvent:
    start_sec = beat_to_sec(draft.start_beat, track)
    end_sec = beat_to_sec(draft.end_beat, track)
    return NoteEvent(
        start_beat=draft.start_beat,
        end_beat=draft.end_beat,
        duration_beat=draft.duration_beat,
        start_sec=start_sec,
        end_sec=end_sec,
        duration_sec=max(0.0, end_sec - start_sec),
        is_rest=draft.is_rest,
        is_grace=draft.is_grace,
        is_chord=draft.is_chord,
        pitch=draft.pitch,
        part_index=part_index,
        part_name=part_name,
        voice_id=draft.voice_id,
        staff_id=draft.staff_id,
        measure_number=draft.measure_number,
    )


def _sort_key(note: NoteEvent) -> tuple[float, int, int]:
    return (note.start_sec, note.part_index, note.midi_number or 0)


def resolve_score(document: str | bytes, settings: ResolverSettings | None = None) -> Score:
    """
    Resolve a partwise MusicXML document into a flat, time-ordered Score.

    Every part is walked on its own. Tempo markings from all parts feed one
    shared tempo track, so a tempo change written in any part applies to the
    whole score. Measure markers come from the first part only.

    Raises:
        ScoreResolutionError: the text is not well-formed XML, is not
            score-partwise, or has no <part>.
    """
    settings = settings or ResolverSettings()
    root = _parse_document(document)

    parts = root.findall("part")
    if not parts:
        raise ScoreResolutionError("MusicXML document has no <part>")
    names = _part_names(root, parts)

    timelines: list[PartTimeline] = [walk_part(p, settings) for p in parts]

    tempo_events: list[TempoEvent] = [ev for tl in timelines for ev in tl.tempo_events]
    track = build_tempo_track(
        tempo_events,
        default_tempo=settings.default_tempo,
        epsilon=settings.tempo_epsilon,
    )

    notes = [
        _to_event(draft, track, idx, names[idx])
        for idx, tl in enumerate(timelines)
        for draft in tl.notes
    ]
    notes.sort(key=_sort_key)

    markers = [
        MeasureMarker(number=m.number, beat=m.beat, sec=beat_to_sec(m.beat, track))
        for m in timelines[0].markers
    ]

    total = max((n.end_sec for n in notes if not n.is_rest), default=0.0)

    log.debug(
        "score_resolved",
        parts=len(parts),
        notes=len(notes),
        measures=len(markers),
        tempo_points=len(track.points),
        total_sec=total,
    )
    return Score(
        title=_score_title(root),
        part_name=names[0],
        part_names=tuple(names),
        notes=tuple(notes),
        measure_markers=tuple(markers),
        tempo_track=track,
        total_duration_sec=total,
    )
