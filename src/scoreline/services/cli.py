from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path

import typer

from scoreline.common.config import AppConfig, load_yaml
from scoreline.common.errors import ScoreResolutionError
from scoreline.common.logging import log, score_context, setup_logging
from scoreline.common.model import Score
from scoreline.data.loader import load_score_text
from scoreline.timeline.resolver import resolve_score

app = typer.Typer(help="scoreline CLI. Resolve MusicXML scores into timed note timelines.")

OPT_VERBOSE = typer.Option(False, "--verbose", "-v", help="Verbose JSON logs.")
OPT_CONFIG = typer.Option(None, "--config", "-c", help="YAML config (resolver/playback/render).")

ARG_SCORE = typer.Argument(..., help="MusicXML file (.musicxml, .xml or .mxl).")
OPT_JSON_OUT = typer.Option(None, "--out", "-o", help="Optional JSON output path.")

ARG_MIDI_OUT = typer.Argument(..., help="Output .mid path.")
OPT_TPB = typer.Option(480, "--ticks-per-beat", help="MIDI resolution.")

ARG_SAMPLES = typer.Argument(..., help="Folder with sample scores.")
OPT_INDEX_OUT = typer.Option(
    None, "--out", "-o", help="Where to write index.json (defaults to <samples>/index.json)."
)
OPT_INDEX_JOBS = typer.Option(1, "--jobs", "-j", help="Parallel workers.")

ARG_SVG_OUT = typer.Argument(..., help="Output SVG path (pages get a numeric suffix).")
OPT_VEROVIO = typer.Option("verovio", "--verovio-cmd", help="Path to the Verovio CLI executable.")

OPT_START_AT = typer.Option(0.0, "--start-at", help="Clock time playback starts at (seconds).")


def _config(path: Path | None) -> AppConfig:
    return load_yaml(path) if path else AppConfig()


def _resolve_file(path: Path, cfg: AppConfig) -> tuple[str, Score]:
    try:
        with score_context(path):
            text = load_score_text(path)
            return text, resolve_score(text, cfg.resolver)
    except (ScoreResolutionError, FileNotFoundError) as err:
        log.error("resolve_failed", file=str(path), error=str(err))
        typer.echo(f"error: {err}", err=True)
        raise typer.Exit(code=1) from err


def _write_json(out: Path, payload: object) -> None:
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


@app.callback()
def main(verbose: bool = OPT_VERBOSE) -> None:
    import logging

    setup_logging(logging.DEBUG if verbose else logging.INFO)
    if verbose:
        log.info("verbose_enabled")


@app.command("resolve")
def resolve(
    score_path: Path = ARG_SCORE,
    out: Path | None = OPT_JSON_OUT,
    config: Path | None = OPT_CONFIG,
) -> None:
    """Resolve a score into its note timeline."""
    _, score = _resolve_file(score_path, _config(config))
    typer.echo(
        f"part={score.part_name} parts={len(score.part_names)} notes={len(score.notes)} "
        f"measures={len(score.measure_markers)} duration={score.total_duration_sec:.3f}s"
    )
    if out:
        _write_json(out, score.model_dump())
        typer.echo(f"Wrote timeline JSON → {out}")


@app.command("schedule")
def schedule(
    score_path: Path = ARG_SCORE,
    out: Path | None = OPT_JSON_OUT,
    start_at: float = OPT_START_AT,
    config: Path | None = OPT_CONFIG,
) -> None:
    """Compute the oscillator schedule for playing a score."""
    from scoreline.playback.scheduler import schedule_playback

    cfg = _config(config)
    _, score = _resolve_file(score_path, cfg)
    tones = schedule_playback(score, start_at=start_at, settings=cfg.playback)
    typer.echo(f"tones={len(tones)} duration={score.total_duration_sec:.3f}s")
    if out:
        _write_json(out, [asdict(t) for t in tones])
        typer.echo(f"Wrote schedule JSON → {out}")


@app.command("midi")
def midi(
    score_path: Path = ARG_SCORE,
    out_mid: Path = ARG_MIDI_OUT,
    ticks_per_beat: int = OPT_TPB,
    config: Path | None = OPT_CONFIG,
) -> None:
    """Export the resolved timeline as a Standard MIDI File."""
    from scoreline.playback.midi import write_midi

    _, score = _resolve_file(score_path, _config(config))
    write_midi(score, out_mid, ticks_per_beat=ticks_per_beat)
    typer.echo(f"Wrote MIDI → {out_mid}")


@app.command("index")
def index(
    samples_dir: Path = ARG_SAMPLES,
    out: Path | None = OPT_INDEX_OUT,
    jobs: int = OPT_INDEX_JOBS,
    config: Path | None = OPT_CONFIG,
) -> None:
    """Build index.json (file, title, duration) for a folder of sample scores."""
    from scoreline.common.logging import add_file_logging
    from scoreline.data.samples import build_sample_index, write_sample_index

    target = out or samples_dir / "index.json"
    add_file_logging(target.parent / "logs" / "index.jsonl")
    log.info("sample_index_start", samples_dir=str(samples_dir), out=str(target), jobs=jobs)
    entries = build_sample_index(samples_dir, jobs=jobs, settings=_config(config).resolver)
    write_sample_index(entries, target)
    typer.echo(f"indexed={len(entries)} → {target}")


@app.command("render")
def render(
    score_path: Path = ARG_SCORE,
    out_svg: Path = ARG_SVG_OUT,
    verovio_cmd: str = OPT_VEROVIO,
    config: Path | None = OPT_CONFIG,
) -> None:
    """Engrave the score to SVG pages with Verovio."""
    from scoreline.render.verovio import render_svg_with_verovio

    cfg = _config(config)
    text, _ = _resolve_file(score_path, cfg)
    try:
        pages = render_svg_with_verovio(verovio_cmd, text, out_svg, cfg.render)
    except RuntimeError as err:
        typer.echo(f"error: {err}", err=True)
        raise typer.Exit(code=1) from err
    typer.echo(f"pages={len(pages)}")


@app.command("crosscheck")
def crosscheck(
    score_path: Path = ARG_SCORE,
    config: Path | None = OPT_CONFIG,
) -> None:
    """Compare the resolved timeline with music21's reading of the score."""
    from scoreline.data.crosscheck import crosscheck_score

    cfg = _config(config)
    text, _ = _resolve_file(score_path, cfg)
    rep = crosscheck_score(text, settings=cfg.resolver)
    typer.echo(
        f"pitched={rep.pitched_notes}/{rep.reference_pitched_notes} "
        f"beats={rep.total_beats:.3f}/{rep.reference_total_beats:.3f} ok={rep.ok}"
    )
    if not rep.ok:
        raise typer.Exit(code=2)


if __name__ == "__main__":
    app()
