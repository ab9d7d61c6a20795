import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))


def note_xml(
    step: str | None = "C",
    octave: int = 4,
    duration: float | None = 1,
    *,
    alter: float | None = None,
    rest: bool = False,
    chord: bool = False,
    grace: bool = False,
    type_: str | None = None,
    voice: str | None = None,
    staff: str | None = None,
) -> str:
    parts = ["<note>"]
    if grace:
        parts.append("<grace/>")
    if chord:
        parts.append("<chord/>")
    if rest:
        parts.append("<rest/>")
    elif step is not None:
        alter_xml = f"<alter>{alter}</alter>" if alter is not None else ""
        parts.append(f"<pitch><step>{step}</step>{alter_xml}<octave>{octave}</octave></pitch>")
    if duration is not None:
        parts.append(f"<duration>{duration}</duration>")
    if voice is not None:
        parts.append(f"<voice>{voice}</voice>")
    if type_ is not None:
        parts.append(f"<type>{type_}</type>")
    if staff is not None:
        parts.append(f"<staff>{staff}</staff>")
    parts.append("</note>")
    return "".join(parts)


def measure_xml(*elements: str, number: str | None = "1", divisions: int | None = None) -> str:
    attrs = f' number="{number}"' if number is not None else ""
    body = ""
    if divisions is not None:
        body += f"<attributes><divisions>{divisions}</divisions></attributes>"
    return f"<measure{attrs}>{body}{''.join(elements)}</measure>"


def tempo_xml(bpm: str) -> str:
    return f'<direction><direction-type><words>T</words></direction-type><sound tempo="{bpm}"/></direction>'


def score_xml(*parts: list[str], names: list[str] | None = None, title: str | None = None) -> str:
    """Partwise document; each part is given as a list of <measure> strings."""
    names = names or [f"Part {i + 1}" for i in range(len(parts))]
    head = '<?xml version="1.0" encoding="UTF-8"?>\n<score-partwise version="3.1">'
    if title:
        head += f"<work><work-title>{title}</work-title></work>"
    plist = "".join(
        f'<score-part id="P{i + 1}"><part-name>{n}</part-name></score-part>'
        for i, n in enumerate(names)
    )
    body = "".join(
        f'<part id="P{i + 1}">{"".join(measures)}</part>' for i, measures in enumerate(parts)
    )
    return f"{head}<part-list>{plist}</part-list>{body}</score-partwise>"

