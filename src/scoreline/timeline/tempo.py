from __future__ import annotations

import math
from collections.abc import Iterable

from scoreline.common.model import TempoEvent, TempoPoint, TempoTrack

DEFAULT_TEMPO = 120.0
TEMPO_EPSILON = 1e-6


def build_tempo_track(
    events: Iterable[TempoEvent],
    *,
    default_tempo: float = DEFAULT_TEMPO,
    epsilon: float = TEMPO_EPSILON,
) -> TempoTrack:
    """
    Merge tempo events from every part into one track.

    Events at (nearly) the same beat collapse into one, the later event's tempo
    winning. The track always starts at beat 0; `default_tempo` covers the
    stretch before the first marking.
    """
    # sorted() is stable: for equal beats the event seen last stays last
    ordered = sorted(
        (TempoEvent(beat=max(0.0, ev.beat), tempo=ev.tempo) for ev in events),
        key=lambda ev: ev.beat,
    )

    merged: list[list[float]] = []
    for ev in ordered:
        if merged and ev.beat - merged[-1][0] < epsilon:
            merged[-1][1] = ev.tempo
            continue
        merged.append([ev.beat, ev.tempo])

    if merged and merged[0][0] < epsilon:
        merged[0][0] = 0.0
    if not merged or merged[0][0] > 0:
        merged.insert(0, [0.0, default_tempo])

    return TempoTrack(points=tuple(TempoPoint(beat=b, tempo=t) for b, t in merged))


def beat_to_sec(beat: float, track: TempoTrack) -> float:
    """Elapsed seconds at `beat`, integrating the piecewise-constant tempo."""
    target = max(0.0, beat)
    points = track.points
    sec = 0.0
    for i, point in enumerate(points):
        seg_end = points[i + 1].beat if i + 1 < len(points) else math.inf
        if target <= seg_end:
            return sec + (target - point.beat) * 60.0 / point.tempo
        sec += (seg_end - point.beat) * 60.0 / point.tempo
    return sec


def sec_to_beat(sec: float, track: TempoTrack) -> float:
    """Inverse of beat_to_sec."""
    remaining = max(0.0, sec)
    points = track.points
    for i, point in enumerate(points):
        if i + 1 < len(points):
            seg_sec = (points[i + 1].beat - point.beat) * 60.0 / point.tempo
            if remaining > seg_sec:
                remaining -= seg_sec
                continue
        return point.beat + remaining * point.tempo / 60.0
    return 0.0
