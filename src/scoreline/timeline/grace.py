from __future__ import annotations

from scoreline.timeline.events import DraftNote


class GraceBuffer:
    """
    Holds grace notes until the note they decorate is known.

    Grace notes occupy no time on the main grid: on flush they are packed
    backwards from the anchor beat, never before the start of the measure.
    """

    def __init__(self) -> None:
        self._pending: list[DraftNote] = []

    def __len__(self) -> int:
        return len(self._pending)

    def add(self, note: DraftNote) -> None:
        self._pending.append(note)

    def span(self) -> float:
        return sum(g.duration_beat for g in self._pending)

    def flush(self, anchor_beat: float, measure_start_beat: float) -> list[DraftNote]:
        """Place the pending notes ending at `anchor_beat` and empty the buffer."""
        if not self._pending:
            return []

        pos = max(measure_start_beat, anchor_beat - self.span())
        onset = pos
        placed: list[DraftNote] = []
        for i, g in enumerate(self._pending):
            if g.is_chord and i > 0:
                g.start_beat = onset
            else:
                onset = pos
                g.start_beat = pos
                pos += g.duration_beat
            placed.append(g)

        self._pending = []
        return placed
