from __future__ import annotations

import xml.etree.ElementTree as ET

from scoreline.timeline.xmlutil import safe_float, text_of

# Nominal length of each MusicXML note type, in quarter-note beats.
NOTE_TYPE_BEATS: dict[str, float] = {
    "maxima": 32.0,
    "long": 16.0,
    "breve": 8.0,
    "whole": 4.0,
    "half": 2.0,
    "quarter": 1.0,
    "eighth": 0.5,
    "16th": 0.25,
    "32nd": 0.125,
    "64th": 0.0625,
    "128th": 0.03125,
    "256th": 0.015625,
}


def explicit_duration_beats(note_el: ET.Element, divisions: float) -> float | None:
    """Beats from the <duration> tick count, or None when missing or unusable."""
    ticks = safe_float(text_of(note_el, "duration"))
    if ticks is None or ticks < 0 or divisions <= 0:
        return None
    return ticks / divisions


def dotted(base: float, dots: int) -> float:
    """Each dot adds half of the previous addition: 1 + 1/2 + 1/4 + ..."""
    total = base
    add = base
    for _ in range(max(0, dots)):
        add /= 2.0
        total += add
    return total


def tuplet_ratio(note_el: ET.Element) -> float:
    """normal/actual from <time-modification>; 1.0 when absent or not both positive."""
    tm = note_el.find("time-modification")
    if tm is None:
        return 1.0
    actual = safe_float(text_of(tm, "actual-notes"))
    normal = safe_float(text_of(tm, "normal-notes"))
    if actual is None or normal is None or actual <= 0 or normal <= 0:
        return 1.0
    return normal / actual


def symbolic_duration_beats(note_el: ET.Element) -> float | None:
    type_name = text_of(note_el, "type")
    if type_name is None:
        return None
    base = NOTE_TYPE_BEATS.get(type_name.lower())
    if base is None:
        return None
    dots = len(note_el.findall("dot"))
    return dotted(base, dots) * tuplet_ratio(note_el)


def resolve_duration(
    note_el: ET.Element,
    divisions: float,
    fallback: float = 0.0,
    *,
    use_type: bool = True,
) -> float:
    """
    Duration of a <note> in beats.

    Order of preference:
      1. explicit <duration> ticks / divisions (when it yields a positive value);
      2. note <type> from NOTE_TYPE_BEATS, extended by dots and scaled by the tuplet ratio;
      3. `fallback`.

    `use_type=False` skips step 2 (grace notes: their written type is nominal).
    """
    explicit = explicit_duration_beats(note_el, divisions)
    if explicit is not None and explicit > 0:
        return explicit
    if use_type:
        symbolic = symbolic_duration_beats(note_el)
        if symbolic is not None and symbolic > 0:
            return symbolic
    return fallback
