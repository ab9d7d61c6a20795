import pytest
from conftest import measure_xml, note_xml, score_xml, tempo_xml
from pydantic import ValidationError

from scoreline.common.errors import ScoreResolutionError
from scoreline.timeline.resolver import resolve_score


def test_rest_then_quarter_at_120() -> None:
    doc = score_xml(
        [measure_xml(note_xml(rest=True), note_xml("C", 4, 1, alter=0), divisions=1)]
    )
    score = resolve_score(doc)

    rest, note = score.notes
    assert rest.is_rest and rest.pitch is None
    assert rest.start_sec == 0.0
    assert rest.duration_sec == pytest.approx(0.5)
    assert note.start_sec == pytest.approx(0.5)
    assert note.midi_number == 60
    assert note.duration_sec == pytest.approx(0.5)
    assert score.total_duration_sec == pytest.approx(1.0)


def test_chord_notes_share_onset() -> None:
    doc = score_xml(
        [
            measure_xml(
                note_xml("C", 4, 2),
                note_xml("E", 4, 2, chord=True),
                note_xml("G", 4, 2, chord=True),
                note_xml("D", 4, 1),
                divisions=1,
            )
        ]
    )
    notes = resolve_score(doc).notes
    assert [n.midi_number for n in notes] == [60, 64, 67, 62]
    assert [n.is_chord for n in notes] == [False, True, True, False]
    assert {n.start_beat for n in notes[:3]} == {0.0}
    assert {n.start_sec for n in notes[:3]} == {0.0}
    assert notes[3].start_beat == pytest.approx(2.0)


def test_graces_placed_before_anchor() -> None:
    doc = score_xml(
        [
            measure_xml(
                note_xml("C", 4, 4, type_="whole"),
                note_xml("D", 5, None, grace=True, type_="eighth"),
                note_xml("E", 5, None, grace=True, type_="eighth"),
                note_xml("F", 4, 1, type_="quarter"),
                divisions=1,
            )
        ]
    )
    notes = resolve_score(doc).notes
    graces = [n for n in notes if n.is_grace]
    main = [n for n in notes if n.midi_number == 65][0]

    assert [g.start_beat for g in graces] == pytest.approx([3.75, 3.875])
    assert all(g.duration_beat == pytest.approx(0.125) for g in graces)
    assert main.start_beat == pytest.approx(4.0)
    assert main.start_sec == pytest.approx(2.0)


def test_graces_clamped_to_measure_start() -> None:
    doc = score_xml(
        [
            measure_xml(note_xml("C", 4, 4), divisions=1),
            measure_xml(
                note_xml("D", 5, None, grace=True),
                note_xml("E", 5, None, grace=True),
                note_xml("F", 4, 4),
                number="2",
            ),
        ]
    )
    notes = resolve_score(doc).notes
    graces = [n for n in notes if n.is_grace]
    main = [n for n in notes if n.midi_number == 65][0]
    assert [g.start_beat for g in graces] == pytest.approx([4.0, 4.125])
    assert main.start_beat == pytest.approx(4.0)


def test_trailing_graces_are_not_dropped() -> None:
    doc = score_xml(
        [measure_xml(note_xml("C", 4, 4), note_xml("G", 4, None, grace=True), divisions=1)]
    )
    score = resolve_score(doc)
    grace = [n for n in score.notes if n.is_grace]
    assert len(grace) == 1
    assert grace[0].start_beat == pytest.approx(3.875)
    assert grace[0].end_beat == pytest.approx(4.0)


def test_grace_chord_before_anchor() -> None:
    doc = score_xml(
        [
            measure_xml(
                note_xml("C", 4, 4),
                note_xml("D", 5, None, grace=True),
                note_xml("F", 5, None, grace=True, chord=True),
                note_xml("E", 4, 1),
                divisions=1,
            )
        ]
    )
    notes = resolve_score(doc).notes
    graces = [n for n in notes if n.is_grace]
    main = [n for n in notes if n.midi_number == 64][0]
    assert [g.start_beat for g in graces] == pytest.approx([3.75, 3.75])
    assert [g.is_chord for g in graces] == [False, True]
    assert main.start_beat == pytest.approx(4.0)


def test_graces_flushed_before_backup() -> None:
    doc = score_xml(
        [
            measure_xml(
                note_xml("C", 4, 2),
                note_xml("D", 5, None, grace=True),
                "<backup><duration>2</duration></backup>",
                note_xml("E", 3, 2, voice="2"),
                divisions=1,
            )
        ]
    )
    notes = resolve_score(doc).notes
    grace = [n for n in notes if n.is_grace][0]
    low = [n for n in notes if n.midi_number == 52][0]
    assert grace.start_beat == pytest.approx(1.875)
    assert low.start_beat == 0.0
    assert low.voice_id == "2"


def test_backup_and_forward() -> None:
    doc = score_xml(
        [
            measure_xml(
                note_xml("C", 5, 8, voice="1"),
                "<backup><duration>8</duration></backup>",
                note_xml("E", 3, 4, voice="2", staff="2"),
                note_xml("G", 3, 4, voice="2", staff="2"),
                divisions=2,
            ),
            measure_xml(
                "<forward><duration>2</duration></forward>",
                note_xml("D", 5, 2),
                "<backup><duration>40</duration></backup>",
                note_xml("F", 3, 2),
                number="2",
            ),
        ]
    )
    by_midi = {n.midi_number: n for n in resolve_score(doc).notes}
    assert by_midi[72].start_beat == 0.0 and by_midi[72].end_beat == pytest.approx(4.0)
    assert by_midi[52].start_beat == 0.0 and by_midi[52].staff_id == "2"
    assert by_midi[55].start_beat == pytest.approx(2.0)
    # forward moves one beat into measure 2
    assert by_midi[74].start_beat == pytest.approx(5.0)
    # an oversized backup stops at the start of the measure
    assert by_midi[53].start_beat == pytest.approx(4.0)


def test_divisions_change_and_fallback() -> None:
    doc = score_xml(
        [
            measure_xml(note_xml("C", 4, 1), divisions=1),
            measure_xml(note_xml("D", 4, 2), number="2", divisions=4),
            measure_xml(
                "<attributes><divisions>abc</divisions></attributes>",
                note_xml("E", 4, 3),
                number="3",
            ),
        ]
    )
    by_midi = {n.midi_number: n for n in resolve_score(doc).notes}
    assert by_midi[62].start_beat == pytest.approx(1.0)
    assert by_midi[62].duration_beat == pytest.approx(0.5)
    assert by_midi[64].start_beat == pytest.approx(1.5)
    assert by_midi[64].duration_beat == pytest.approx(3.0)


def test_tempo_direction_mid_measure() -> None:
    doc = score_xml(
        [
            measure_xml(
                tempo_xml("120"),
                note_xml("C", 4, 2),
                tempo_xml("60"),
                note_xml("D", 4, 2),
                divisions=1,
            )
        ]
    )
    score = resolve_score(doc)
    d = score.notes[1]
    assert d.start_sec == pytest.approx(1.0)
    assert d.end_sec == pytest.approx(3.0)
    assert d.duration_sec == pytest.approx(2.0)
    assert score.total_duration_sec == pytest.approx(3.0)
    assert [(p.beat, p.tempo) for p in score.tempo_track.points] == [(0.0, 120.0), (2.0, 60.0)]


def test_metronome_and_bare_sound_tempo() -> None:
    metronome = (
        "<direction><direction-type><metronome><beat-unit>quarter</beat-unit>"
        "<per-minute>60</per-minute></metronome></direction-type></direction>"
    )
    doc = score_xml([measure_xml(metronome, note_xml("C", 4, 1), divisions=1)])
    assert resolve_score(doc).notes[0].end_sec == pytest.approx(1.0)

    doc = score_xml([measure_xml('<sound tempo="30"/>', note_xml("C", 4, 1), divisions=1)])
    assert resolve_score(doc).notes[0].end_sec == pytest.approx(2.0)


def test_invalid_tempo_is_ignored() -> None:
    doc = score_xml(
        [
            measure_xml(
                tempo_xml("-5"),
                note_xml("C", 4, 1),
                tempo_xml("fast"),
                tempo_xml("0"),
                note_xml("D", 4, 1),
                divisions=1,
            )
        ]
    )
    score = resolve_score(doc)
    assert [(p.beat, p.tempo) for p in score.tempo_track.points] == [(0.0, 120.0)]
    assert score.total_duration_sec == pytest.approx(1.0)


def test_tempo_from_any_part_applies_to_all() -> None:
    doc = score_xml(
        [measure_xml(note_xml("C", 4, 2), note_xml("D", 4, 2), divisions=1)],
        [
            measure_xml(
                note_xml(rest=True, duration=2),
                tempo_xml("60"),
                note_xml("E", 4, 2),
                divisions=1,
            )
        ],
        names=["Flute", "Cello"],
    )
    score = resolve_score(doc)
    assert [(n.part_index, n.midi_number) for n in score.notes] == [
        (0, 60),
        (1, None),
        (0, 62),
        (1, 64),
    ]
    d = score.notes[2]
    assert d.start_sec == pytest.approx(1.0)
    assert d.end_sec == pytest.approx(3.0)
    assert score.notes[3].part_name == "Cello"
    assert score.part_name == "Flute"
    assert score.part_names == ("Flute", "Cello")


def test_markers_come_from_first_part() -> None:
    doc = score_xml(
        [
            measure_xml(note_xml("C", 4, 4), number="1", divisions=1),
            measure_xml(note_xml("D", 4, 4), number="2a"),
        ],
        [
            measure_xml(note_xml("E", 3, 2), number="1", divisions=1),
            measure_xml(note_xml("F", 3, 2), number="2"),
            measure_xml(note_xml("G", 3, 2), number="3"),
        ],
    )
    markers = resolve_score(doc).measure_markers
    assert [m.number for m in markers] == ["1", "2a"]
    assert [m.beat for m in markers] == [0.0, 4.0]
    assert [m.sec for m in markers] == pytest.approx([0.0, 2.0])


def test_pitch_decoding() -> None:
    doc = score_xml(
        [
            measure_xml(
                note_xml("F", 5, 1, alter=1),
                note_xml("B", 3, 1, alter=-1),
                "<note><pitch><step>G</step><alter>q</alter><octave>x</octave></pitch>"
                "<duration>1</duration></note>",
                divisions=1,
            )
        ]
    )
    fs, bb, g = resolve_score(doc).notes
    assert fs.pitch.midi_number == 78
    assert fs.pitch.diatonic_step == 38
    assert fs.pitch.alter_semitones == 1.0
    assert bb.pitch.midi_number == 58
    assert g.pitch.midi_number == 67
    assert g.pitch.alter_semitones == 0.0


def test_only_rests_have_zero_total() -> None:
    doc = score_xml([measure_xml(note_xml(rest=True, duration=4), divisions=1)])
    score = resolve_score(doc)
    assert len(score.notes) == 1
    assert score.total_duration_sec == 0.0


def test_empty_part_is_not_fatal() -> None:
    doc = (
        '<score-partwise><part-list><score-part id="P1"/></part-list>'
        '<part id="P1"/></score-partwise>'
    )
    score = resolve_score(doc)
    assert score.notes == ()
    assert score.measure_markers == ()
    assert score.total_duration_sec == 0.0
    assert score.part_name == "Unknown Part"


def test_title_and_measure_numbers() -> None:
    doc = score_xml(
        [measure_xml(note_xml("C", 4, 1), number="7", divisions=1)], title="Etude"
    )
    score = resolve_score(doc)
    assert score.title == "Etude"
    assert score.notes[0].measure_number == "7"


@pytest.mark.parametrize(
    "doc",
    [
        "<score-partwise><part>",
        "not xml at all",
        "<score-partwise><part-list/></score-partwise>",
        "<score-timewise><measure/></score-timewise>",
    ],
)
def test_structural_failures(doc: str) -> None:
    with pytest.raises(ScoreResolutionError):
        resolve_score(doc)


def test_resolution_is_deterministic() -> None:
    doc = score_xml(
        [
            measure_xml(
                tempo_xml("96"),
                note_xml("C", 4, 3),
                note_xml("E", 4, 3, chord=True),
                note_xml("D", 5, None, grace=True),
                note_xml("G", 4, 1),
                divisions=2,
            )
        ],
        [measure_xml(note_xml("C", 3, 4), divisions=2)],
    )
    first, second = resolve_score(doc), resolve_score(doc.encode("utf-8"))
    assert first == second
    assert first.model_dump_json() == second.model_dump_json()


def test_durations_are_never_negative() -> None:
    doc = score_xml(
        [measure_xml(note_xml("C", 4, -3), note_xml("D", 4, "x"), note_xml("E", 4, 1), divisions=1)]
    )
    score = resolve_score(doc)
    for n in score.notes:
        assert n.duration_sec >= 0
        assert n.duration_sec == pytest.approx(n.end_sec - n.start_sec)


def test_score_is_frozen() -> None:
    score = resolve_score(score_xml([measure_xml(note_xml("C", 4, 1), divisions=1)]))
    with pytest.raises(ValidationError):
        score.notes[0].start_sec = 5.0  # type: ignore[misc]
