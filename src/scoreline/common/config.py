from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field


class ResolverSettings(BaseModel):
    default_tempo: float = Field(120.0, gt=0)
    grace_fallback_beat: float = Field(0.125, ge=0)
    tempo_epsilon: float = Field(1e-6, gt=0)


class PlaybackSettings(BaseModel):
    offset_sec: float = 0.12
    min_note_sec: float = 0.02
    attack_sec: float = 0.02
    release_tail_sec: float = 0.03
    peak_gain: float = 0.24
    floor_gain: float = 0.0001
    waveform: str = "triangle"


class RenderSettings(BaseModel):
    page_height: int = 2800
    page_width: int = 1900
    scale: int = 36
    adjust_page_height: bool = True
    header: str = "none"
    footer: str = "none"


class AppConfig(BaseModel):
    resolver: ResolverSettings = ResolverSettings()
    playback: PlaybackSettings = PlaybackSettings()
    render: RenderSettings = RenderSettings()


def load_yaml(path: str | Path) -> AppConfig:
    p = Path(path)
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    return AppConfig(**data)
