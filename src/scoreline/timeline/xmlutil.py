from __future__ import annotations

import math
import xml.etree.ElementTree as ET
from typing import Any


def text_of(el: ET.Element, path: str) -> str | None:
    """Stripped text of the first element matching `path`, or None if absent/empty."""
    node = el.find(path)
    if node is None or node.text is None:
        return None
    txt = node.text.strip()
    return txt or None


def safe_float(v: Any, default: float | None = None) -> float | None:
    try:
        f = float(v)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(f):
        return default
    return f


def safe_int(v: Any, default: int) -> int:
    f = safe_float(v)
    if f is None:
        return default
    return int(f)
