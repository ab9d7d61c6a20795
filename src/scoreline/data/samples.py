from __future__ import annotations

import json
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path
from typing import Any

from scoreline.common.config import ResolverSettings
from scoreline.common.errors import ScoreResolutionError
from scoreline.common.logging import log, score_context
from scoreline.data.loader import gather_score_files, load_score_text
from scoreline.timeline.resolver import resolve_score


def format_duration(seconds: float) -> str:
    total = max(0, int(round(seconds)))
    return f"{total // 60}:{total % 60:02d}"


def _index_one(
    args: tuple[Path, Path, ResolverSettings]
) -> tuple[Path, dict[str, Any] | None, str | None]:
    """
    Worker for one score file.
    Returns (path, entry or None, error message or None).
    """
    path, root, settings = args
    try:
        with score_context(path):
            score = resolve_score(load_score_text(path), settings)
    except (ScoreResolutionError, OSError) as e:
        return path, None, str(e)
    entry = {
        "file": path.relative_to(root).as_posix(),
        "title": score.title or path.stem,
        "duration": format_duration(score.total_duration_sec),
    }
    return path, entry, None


def build_sample_index(
    samples_dir: Path,
    *,
    jobs: int = 1,
    settings: ResolverSettings | None = None,
) -> list[dict[str, Any]]:
    """
    List every score under `samples_dir` with its title and playing time.

    Files that cannot be resolved are logged and left out. Entries are ordered
    by file path whatever the number of workers.
    """
    settings = settings or ResolverSettings()
    files = gather_score_files(samples_dir)
    if not files:
        log.info("sample_index_no_candidates", samples_dir=str(samples_dir))
        return []

    tasks = [(p, samples_dir, settings) for p in files]
    results: list[tuple[Path, dict[str, Any] | None, str | None]] = []
    if jobs <= 1:
        results = [_index_one(t) for t in tasks]
    else:
        with ProcessPoolExecutor(max_workers=jobs) as ex:
            futs = [ex.submit(_index_one, t) for t in tasks]
            for fut in as_completed(futs):
                results.append(fut.result())

    entries: list[dict[str, Any]] = []
    for path, entry, err in sorted(results, key=lambda r: r[0]):
        if entry is None:
            log.warning("sample_index_failed", file=str(path), error=err)
            continue
        entries.append(entry)

    log.info("sample_index_done", indexed=len(entries), total=len(files))
    return entries


def write_sample_index(entries: list[dict[str, Any]], out_path: Path) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(
        json.dumps(entries, ensure_ascii=False, indent=2), encoding="utf-8"
    )
