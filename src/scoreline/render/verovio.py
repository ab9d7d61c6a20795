from __future__ import annotations

import subprocess
from pathlib import Path

from scoreline.common.config import RenderSettings
from scoreline.common.logging import log


def build_verovio_command(
    verovio_cmd: str | Path,
    out_svg: Path,
    settings: RenderSettings,
    extra_args: list[str] | None = None,
) -> list[str]:
    cmd: list[str] = [Path(verovio_cmd).as_posix(), "-a", "-f", "musicxml"]
    cmd += [
        "--page-height",
        str(settings.page_height),
        "--page-width",
        str(settings.page_width),
        "--scale",
        str(settings.scale),
        "--header",
        settings.header,
        "--footer",
        settings.footer,
    ]
    if settings.adjust_page_height:
        cmd += ["--adjust-page-height"]
    if extra_args:
        cmd += extra_args
    # "-" reads the document from stdin
    cmd += ["-o", out_svg.as_posix(), "-"]
    return cmd


def _collect_pages(out_svg: Path) -> list[Path]:
    if out_svg.exists():
        return [out_svg]
    pages: set[Path] = set()
    for pattern in (f"{out_svg.stem}_*.svg", f"{out_svg.stem}-*.svg"):
        pages.update(out_svg.parent.glob(pattern))
    return sorted(pages)


def render_svg_with_verovio(
    verovio_cmd: str | Path,
    document: str,
    out_svg: Path,
    settings: RenderSettings | None = None,
    extra_args: list[str] | None = None,
) -> list[Path]:
    """
    Engrave MusicXML text to SVG pages via the Verovio CLI.

    The raw document text is handed over as-is; Verovio parses it on its own.
    """
    settings = settings or RenderSettings()
    out_svg = out_svg.resolve()
    out_svg.parent.mkdir(parents=True, exist_ok=True)

    cmd = build_verovio_command(verovio_cmd, out_svg, settings, extra_args)
    log.info("verovio_cmd", cmd=" ".join(cmd))
    try:
        subprocess.run(cmd, input=document, text=True, check=True)
    except FileNotFoundError as err:
        raise RuntimeError(f"Verovio CLI not found: {verovio_cmd}") from err
    except subprocess.CalledProcessError as err:
        raise RuntimeError(f"Verovio render failed: {err}") from err

    produced = _collect_pages(out_svg)
    if not produced:
        log.warning("verovio_no_output_found", expected=str(out_svg))
        raise RuntimeError("Verovio did not produce expected SVG(s).")
    log.info("verovio_render_ok", files=[p.name for p in produced])
    return produced
