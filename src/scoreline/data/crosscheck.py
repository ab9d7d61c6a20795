from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from music21 import converter, exceptions21, stream

from scoreline.common.config import ResolverSettings
from scoreline.common.logging import log
from scoreline.timeline.resolver import resolve_score


@dataclass
class CrosscheckReport:
    """Resolved timeline vs. music21's reading of the same document."""

    pitched_notes: int
    reference_pitched_notes: int
    total_beats: float
    reference_total_beats: float
    ok: bool


def _silence_music21_warnings() -> None:
    import warnings

    for name in ("MusicXMLWarning", "Music21DeprecationWarning"):
        cat = getattr(exceptions21, name, None)
        if isinstance(cat, type) and issubclass(cat, Warning):
            warnings.filterwarnings("ignore", category=cat)


def _reference_counts(document: str) -> tuple[int, float]:
    parsed: Any = converter.parseData(document, format="musicxml")
    pitched = 0
    for el in parsed.recurse().notes:
        pitched += len(el.pitches)
    if isinstance(parsed, stream.Stream):
        total = float(parsed.highestTime)
    else:
        total = 0.0
    return pitched, total


def crosscheck_score(
    document: str,
    *,
    settings: ResolverSettings | None = None,
    tolerance: float = 1e-6,
    quiet_warnings: bool = True,
) -> CrosscheckReport:
    """
    Compare the number of pitched notes and the overall length in beats with
    what music21 reads from the same text.
    """
    if quiet_warnings:
        _silence_music21_warnings()

    score = resolve_score(document, settings)
    pitched = len(score.sounding_notes)
    total_beats = max((n.end_beat for n in score.notes), default=0.0)

    ref_pitched, ref_total = _reference_counts(document)
    ok = pitched == ref_pitched and abs(total_beats - ref_total) <= tolerance

    rep = CrosscheckReport(
        pitched_notes=pitched,
        reference_pitched_notes=ref_pitched,
        total_beats=total_beats,
        reference_total_beats=ref_total,
        ok=ok,
    )
    log.info("crosscheck", **rep.__dict__)
    return rep
