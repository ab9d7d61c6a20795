from __future__ import annotations

from pathlib import Path

import mido

from scoreline.common.logging import log
from scoreline.common.model import Score

DEFAULT_TICKS_PER_BEAT = 480


def _to_delta(events: list[tuple[int, int, mido.Message | mido.MetaMessage]]) -> mido.MidiTrack:
    """Absolute-tick events -> MidiTrack with delta times. Note-offs sort before note-ons."""
    track = mido.MidiTrack()
    now = 0
    for tick, _order, msg in sorted(events, key=lambda e: (e[0], e[1])):
        track.append(msg.copy(time=tick - now))
        now = tick
    track.append(mido.MetaMessage("end_of_track", time=0))
    return track


def score_to_midi(score: Score, ticks_per_beat: int = DEFAULT_TICKS_PER_BEAT) -> mido.MidiFile:
    """
    Standard MIDI File (type 1): a conductor track with the tempo track, then
    one track per part. Rests are skipped, grace notes keep their placed beats.
    """
    mid = mido.MidiFile(type=1, ticks_per_beat=ticks_per_beat)

    conductor: list[tuple[int, int, mido.Message | mido.MetaMessage]] = []
    for point in score.tempo_track.points:
        tick = round(point.beat * ticks_per_beat)
        conductor.append((tick, 0, mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(point.tempo))))
    mid.tracks.append(_to_delta(conductor))

    for part_index, name in enumerate(score.part_names):
        channel = part_index % 16
        events: list[tuple[int, int, mido.Message | mido.MetaMessage]] = [
            (0, 0, mido.MetaMessage("track_name", name=name))
        ]
        for note in score.sounding_notes:
            if note.part_index != part_index:
                continue
            midi = max(0, min(127, note.pitch.midi_number))  # type: ignore[union-attr]
            on = round(note.start_beat * ticks_per_beat)
            off = max(on + 1, round(note.end_beat * ticks_per_beat))
            events.append((on, 2, mido.Message("note_on", note=midi, velocity=64, channel=channel)))
            events.append((off, 1, mido.Message("note_off", note=midi, velocity=64, channel=channel)))
        mid.tracks.append(_to_delta(events))

    return mid


def write_midi(score: Score, out_mid: Path, ticks_per_beat: int = DEFAULT_TICKS_PER_BEAT) -> Path:
    out_mid.parent.mkdir(parents=True, exist_ok=True)
    mid = score_to_midi(score, ticks_per_beat)
    mid.save(out_mid.as_posix())
    log.info("midi_written", out=str(out_mid), tracks=len(mid.tracks))
    return out_mid
