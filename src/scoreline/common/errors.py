from __future__ import annotations


class ScoreResolutionError(ValueError):
    """The document could not be turned into a timeline at all."""
