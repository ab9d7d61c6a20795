from __future__ import annotations

import io
import xml.etree.ElementTree as ET
import zipfile
from pathlib import Path

from scoreline.common.errors import ScoreResolutionError
from scoreline.common.logging import log

SCORE_EXT = {".musicxml", ".xml", ".mxl"}
CONTAINER_PATH = "META-INF/container.xml"


def _rootfile_from_container(zf: zipfile.ZipFile) -> str:
    try:
        container = zf.read(CONTAINER_PATH)
    except KeyError:
        return ""
    try:
        root = ET.fromstring(container)
    except ET.ParseError as err:
        log.warning("mxl_container_unreadable", error=str(err))
        return ""
    # container.xml may or may not carry a namespace
    for el in root.iter():
        if el.tag.rsplit("}", 1)[-1] == "rootfile":
            return (el.get("full-path") or "").strip()
    return ""


def _first_xml_entry(zf: zipfile.ZipFile) -> str:
    for info in zf.infolist():
        name = info.filename
        if info.is_dir() or name.startswith("META-INF/"):
            continue
        if name.lower().endswith((".musicxml", ".xml")):
            return name
    return ""


def extract_xml_from_mxl(data: bytes) -> str:
    """
    Return the MusicXML text stored in a compressed .mxl package.

    The root document named by META-INF/container.xml wins; otherwise the first
    .musicxml/.xml entry outside META-INF/ is used.
    """
    try:
        zf = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as err:
        raise ScoreResolutionError(f"Not a valid MXL archive: {err}") from err

    with zf:
        xml_path = _rootfile_from_container(zf) or _first_xml_entry(zf)
        if not xml_path or xml_path not in zf.namelist():
            raise ScoreResolutionError("No MusicXML document found inside the MXL archive")
        return zf.read(xml_path).decode("utf-8", errors="replace")


def load_score_text(path: Path) -> str:
    """Decoded MusicXML text of a .musicxml/.xml file or an .mxl package."""
    if not path.exists():
        raise FileNotFoundError(f"Score file not found: {path}")
    if path.suffix.lower() == ".mxl":
        return extract_xml_from_mxl(path.read_bytes())
    return path.read_text(encoding="utf-8", errors="replace")


def gather_score_files(root: Path) -> list[Path]:
    return sorted(
        p for p in root.rglob("*") if p.is_file() and p.suffix.lower() in SCORE_EXT
    )
