from __future__ import annotations

from dataclasses import dataclass

from scoreline.common.config import PlaybackSettings
from scoreline.common.model import Score
from scoreline.timeline.tempo import sec_to_beat

# Tones shorter than this after clamping are not scheduled at all.
_MIN_AUDIBLE_SEC = 0.001


def midi_to_frequency(midi: float) -> float:
    return 440.0 * 2.0 ** ((midi - 69) / 12.0)


@dataclass(frozen=True)
class ScheduledTone:
    """One oscillator envelope: rise to peak_gain by attack_end, decay to end, stop at stop_at."""

    midi_number: int
    frequency_hz: float
    start: float
    attack_end: float
    end: float
    stop_at: float
    peak_gain: float
    floor_gain: float
    waveform: str
    part_index: int


def schedule_playback(
    score: Score,
    start_at: float = 0.0,
    settings: PlaybackSettings | None = None,
) -> list[ScheduledTone]:
    """
    Turn the sounding notes of `score` into oscillator envelopes.

    `start_at` is the clock time playback is requested at; every tone is
    shifted by it plus the configured offset.
    """
    cfg = settings or PlaybackSettings()
    origin = start_at + cfg.offset_sec
    tones: list[ScheduledTone] = []

    for note in score.sounding_notes:
        start = origin + note.start_sec
        end = start + max(note.duration_sec, cfg.min_note_sec)
        if not end > start + _MIN_AUDIBLE_SEC:
            continue
        attack_end = min(start + cfg.attack_sec, end - _MIN_AUDIBLE_SEC)
        midi = note.pitch.midi_number  # type: ignore[union-attr]
        tones.append(
            ScheduledTone(
                midi_number=midi,
                frequency_hz=midi_to_frequency(midi),
                start=start,
                attack_end=attack_end,
                end=end,
                stop_at=end + cfg.release_tail_sec,
                peak_gain=cfg.peak_gain,
                floor_gain=cfg.floor_gain,
                waveform=cfg.waveform,
                part_index=note.part_index,
            )
        )
    return tones


@dataclass(frozen=True)
class PlaybackPosition:
    time_sec: float
    beat: float
    measure: str
    finished: bool


def playback_position(score: Score, elapsed_sec: float) -> PlaybackPosition:
    """Clamped playing time and the measure it falls in ("-" before the first marker)."""
    t = min(max(0.0, elapsed_sec), score.total_duration_sec)
    measure = "-"
    for marker in score.measure_markers:
        if t >= marker.sec:
            measure = marker.number
        else:
            break
    return PlaybackPosition(
        time_sec=t,
        beat=sec_to_beat(t, score.tempo_track),
        measure=measure,
        finished=t >= score.total_duration_sec,
    )
