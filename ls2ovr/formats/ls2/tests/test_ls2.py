import io
import struct
from dataclasses import replace
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import pytest
from hypothesis import given

from ls2ovr.beatmap import (
    Beatmap,
    BeatmapTimingMap,
    ComplexBackground,
    CustomUnitInfo,
    NoteType,
    NumberedBackground,
    SimpleBackground,
)
from ls2ovr.errors import InvalidBeatmapFile, UnsupportedFeature
from ls2ovr.formats.ls2 import read_ls2
from ls2ovr.formats.notes import encode_ls2_note_v1, encode_ls2_note_v2
from ls2ovr.testutils import strategies as lsst
from ls2ovr.utils import counting_suffixes

V1 = 0x00
V2 = 0x80

Encoder = Callable[[BeatmapTimingMap], Tuple[int, int]]


def u32(value: int) -> bytes:
    return struct.pack("<I", value)


def blob(data: bytes) -> bytes:
    return u32(len(data)) + data


def string(value: str) -> bytes:
    return blob(value.encode("utf8"))


def ls2_file(
    sections: Sequence[bytes], flags: int = V2, stamina: int = 32, score: int = 500
) -> bytes:
    header = struct.pack("<HBBH", len(sections), flags, stamina, score)
    return b"livesim2" + header + b"".join(sections)


def mtdt(
    flags: int = 0,
    star_info: int = 0,
    song_name: str = "",
    audio_name: str = "",
    score_info: Iterable[int] = (0, 0, 0, 0),
    combo_info: Iterable[int] = (0, 0, 0, 0),
) -> bytes:
    return (
        b"MTDT"
        + bytes([flags, star_info])
        + string(song_name)
        + string(audio_name)
        + b"".join(u32(v) for v in score_info)
        + b"".join(u32(v) for v in combo_info)
    )


def raw_note(time_in_ms: int, attribute: int, effect: int) -> bytes:
    return struct.pack("<III", time_in_ms, attribute, effect)


def bmpm(
    notes: Sequence[BeatmapTimingMap], encode: Encoder = encode_ls2_note_v2
) -> bytes:
    res = b"BMPM" + u32(len(notes))
    for note in notes:
        res += raw_note(round(note.time * 1000), *encode(note))
    return res


def simple_notes(count: int = 10) -> List[BeatmapTimingMap]:
    return [BeatmapTimingMap(time=1.0 + i, position=1 + i % 9) for i in range(count)]


def image(fourcc: bytes, index: int, data: bytes) -> bytes:
    return fourcc + bytes([index]) + blob(data)


def data_section(filename: str, data: bytes) -> bytes:
    return b"DATA" + string(filename) + blob(data)


def cover_v2(title: str, data: bytes = b"PNG") -> bytes:
    return b"COVR" + blob(data) + string(title) + string("")


def adio(code: int, payload: bytes) -> bytes:
    return b"ADIO" + bytes([code]) + payload


def decode(data: bytes) -> Beatmap:
    return read_ls2(io.BytesIO(data), suffixes=counting_suffixes())


def decode_v2(*sections: bytes, flags: int = V2) -> Beatmap:
    return decode(ls2_file([mtdt(), bmpm(simple_notes()), *sections], flags=flags))


@given(lsst.notes())
def test_v2_notes(notes: List[BeatmapTimingMap]) -> None:
    # v2 notes have no swing group and long notes are limited to 18 bits of ms
    expected = [replace(n, note_group=0, length=min(n.length, 200.0)) for n in notes]
    beatmap = decode(ls2_file([mtdt(), bmpm(expected)]))
    assert beatmap.beatmaps[0].notes == expected


@pytest.mark.parametrize(
    "effect,note_type,swing,note_group,length",
    [
        (0x1, NoteType.NORMAL, False, 0, 0.0),
        (0x12, NoteType.TOKEN, False, 0, 0.0),
        (0x23, NoteType.STAR, False, 0, 0.0),
        (0x34, NoteType.NORMAL, True, 2, 0.0),
        (0x80000000 | (1500 << 4) | 5, NoteType.LONG, False, 0, 1.5),
    ],
)
def test_v1_notes(
    effect: int, note_type: NoteType, swing: bool, note_group: int, length: float
) -> None:
    notes = b"BMPM" + u32(1) + raw_note(1000, 1, effect)
    [note] = decode(ls2_file([notes], flags=V1)).beatmaps[0].notes
    assert note.position == effect & 0xF
    assert note.note_type == note_type
    assert note.swing == swing
    assert note.note_group == note_group
    assert note.length == pytest.approx(length)


def test_v1_and_v2_writers_agree_on_simple_notes() -> None:
    notes = simple_notes()
    v1 = decode(ls2_file([bmpm(notes, encode_ls2_note_v1)], flags=V1))
    v2 = decode(ls2_file([mtdt(), bmpm(notes, encode_ls2_note_v2)]))
    assert v1.beatmaps[0].notes == v2.beatmaps[0].notes


def test_notes_are_sorted_and_marked() -> None:
    notes = [
        BeatmapTimingMap(time=2.0, position=1),
        BeatmapTimingMap(time=1.0, position=2),
        BeatmapTimingMap(time=1.0, position=8),
    ]
    decoded = decode(ls2_file([mtdt(), bmpm(notes)])).beatmaps[0].notes
    assert [n.time for n in decoded] == [1.0, 1.0, 2.0]
    assert [n.simultaneous for n in decoded] == [True, True, False]


def test_header_fields() -> None:
    beatmap = decode(ls2_file([mtdt(), bmpm(simple_notes())], stamina=40, score=321))
    assert beatmap.beatmaps[0].initial_stamina == 40
    assert beatmap.beatmaps[0].base_score_per_tap == 321


def test_out_of_range_stamina_means_default() -> None:
    beatmap = decode(ls2_file([mtdt(), bmpm(simple_notes())], stamina=200))
    assert beatmap.beatmaps[0].initial_stamina == 0


def test_wrong_signature() -> None:
    data = b"livesim3" + ls2_file([])[8:]
    with pytest.raises(InvalidBeatmapFile, match="header"):
        decode(data)


def test_truncated_file() -> None:
    data = ls2_file([mtdt(), bmpm(simple_notes())])
    with pytest.raises(InvalidBeatmapFile):
        decode(data[:-5])


def test_unknown_section_is_fatal() -> None:
    with pytest.raises(InvalidBeatmapFile, match="Unknown section"):
        decode_v2(b"WHAT" + u32(0))


def test_tempo_relative_sections_are_unsupported() -> None:
    with pytest.raises(UnsupportedFeature):
        decode_v2(b"BMPT" + u32(0))


def test_tempo_relative_notes_are_unsupported() -> None:
    notes = b"BMPM" + u32(1) + raw_note(1000, 0xFFFFFFFF, 1)
    with pytest.raises(UnsupportedFeature):
        decode(ls2_file([mtdt(), notes]))


@pytest.mark.parametrize("time_in_ms,effect", [(0, 1), (1000, 0), (1000, 10)])
def test_invalid_notes_are_fatal(time_in_ms: int, effect: int) -> None:
    notes = b"BMPM" + u32(1) + raw_note(time_in_ms, 1, effect)
    with pytest.raises(InvalidBeatmapFile, match="Invalid note"):
        decode(ls2_file([mtdt(), notes]))


def test_beatmaps_without_notes_are_invalid() -> None:
    with pytest.raises(InvalidBeatmapFile):
        decode(ls2_file([mtdt()]))


def test_missing_metadata_is_fatal_in_v2() -> None:
    with pytest.raises(InvalidBeatmapFile, match="MTDT"):
        decode(ls2_file([bmpm(simple_notes())]))


def test_missing_metadata_is_fine_in_v1() -> None:
    beatmap = decode(ls2_file([bmpm(simple_notes(), encode_ls2_note_v1)], flags=V1))
    assert beatmap.metadata.title == "unknown"
    assert beatmap.beatmaps[0].star == 1
    assert beatmap.beatmaps[0].star_random == 1


def test_metadata() -> None:
    beatmap = decode(
        ls2_file(
            [
                mtdt(
                    flags=0x04 | 0x08,
                    star_info=(9 << 4) | 7,
                    song_name="Bokura no LIVE Kimi to no LIFE",
                    audio_name="bokura.mp3",
                ),
                bmpm(simple_notes()),
            ]
        )
    )
    assert beatmap.metadata.title == "Bokura no LIVE Kimi to no LIFE"
    assert beatmap.metadata.audio == "bokura.mp3"
    assert beatmap.beatmaps[0].star == 7
    assert beatmap.beatmaps[0].star_random == 9


def test_star_without_random_star() -> None:
    beatmap = decode(ls2_file([mtdt(flags=0x04, star_info=6), bmpm(simple_notes())]))
    assert beatmap.beatmaps[0].star == 6
    assert beatmap.beatmaps[0].star_random == 6


@pytest.mark.parametrize("flags,star_info", [(0x04, 0x50), (0x08, 0x05)])
def test_flagged_zero_stars_are_fatal(flags: int, star_info: int) -> None:
    with pytest.raises(InvalidBeatmapFile, match="zero"):
        decode(ls2_file([mtdt(flags=flags, star_info=star_info), bmpm(simple_notes())]))


def test_explicit_rank_info() -> None:
    sections = [
        mtdt(flags=0x01 | 0x02, score_info=(10, 20, 30, 40), combo_info=(1, 2, 3, 4)),
        bmpm(simple_notes()),
    ]
    beatmap_data = decode(ls2_file(sections)).beatmaps[0]
    assert beatmap_data.score_info == (10, 20, 30, 40)
    assert beatmap_data.combo_info == (1, 2, 3, 4)


def test_invalid_rank_info_is_computed_instead() -> None:
    sections = [mtdt(flags=0x01, score_info=(10, 5, 30, 40)), bmpm(simple_notes())]
    with pytest.warns(UserWarning, match="score"):
        beatmap_data = decode(ls2_file(sections)).beatmaps[0]
    assert beatmap_data.score_info == (2110, 5280, 6330, 7390)


def test_score_info_section() -> None:
    scri = b"SCRI" + b"".join(u32(v) for v in (10, 20, 30, 40))
    v1 = decode(ls2_file([bmpm(simple_notes(), encode_ls2_note_v1), scri], flags=V1))
    assert v1.beatmaps[0].score_info == (10, 20, 30, 40)
    v2 = decode_v2(scri)
    assert v2.beatmaps[0].score_info == (2110, 5280, 6330, 7390)


def test_cover_title_is_a_fallback() -> None:
    beatmap = decode_v2(cover_v2("Aishiteru Banzai!", b"cover"))
    assert beatmap.metadata.title == "Aishiteru Banzai!"
    assert beatmap.metadata.artwork == "cover.png"
    assert beatmap.files["cover.png"] == b"cover"

    named = decode(
        ls2_file(
            [mtdt(song_name="Mogyutto"), bmpm(simple_notes()), cover_v2("Other")]
        )
    )
    assert named.metadata.title == "Mogyutto"


def test_v1_cover_layout() -> None:
    cover = b"COVR" + string("Kitto Seishun ga Kikoeru") + string("") + blob(b"img")
    beatmap = decode(ls2_file([bmpm(simple_notes(), encode_ls2_note_v1), cover], V1))
    assert beatmap.metadata.title == "Kitto Seishun ga Kikoeru"
    assert beatmap.files[beatmap.metadata.artwork or ""] == b"img"


def test_synthesized_names_dodge_declared_files() -> None:
    beatmap = decode_v2(data_section("cover.png", b"declared"), cover_v2("", b"cover"))
    assert beatmap.files["cover.png"] == b"declared"
    assert beatmap.metadata.artwork == "cover-00000.png"
    assert beatmap.files["cover-00000.png"] == b"cover"


def test_duplicate_declared_files_keep_the_first() -> None:
    with pytest.warns(UserWarning, match="Duplicate"):
        beatmap = decode_v2(data_section("a", b"first"), data_section("a", b"second"))
    assert beatmap.files == {"a": b"first"}


def test_storyboard() -> None:
    lua = b"function Initialize() end"
    beatmap = decode_v2(b"SRYL" + blob(lua))
    assert beatmap.files["storyboard.lua"] == lua


@pytest.mark.parametrize("storyboard", [b"\x1f\x8b\x08\x00", b"\x78\x9c\x00"])
def test_compressed_storyboards_are_unsupported(storyboard: bytes) -> None:
    with pytest.raises(UnsupportedFeature):
        decode_v2(b"SRYL" + blob(storyboard))


def test_tiny_storyboards_are_invalid() -> None:
    with pytest.raises(InvalidBeatmapFile):
        decode_v2(b"SRYL" + blob(b"x"))


@pytest.mark.parametrize("code,extension", [(0, "wav"), (1, "ogg"), (2, "mp3")])
def test_audio(code: int, extension: str) -> None:
    beatmap = decode_v2(adio(code, blob(b"audio data")))
    assert beatmap.metadata.audio == f"audio-00000.{extension}"
    assert beatmap.files[f"audio-00000.{extension}"] == b"audio data"


def test_audio_keeps_the_metadata_name() -> None:
    beatmap = decode(
        ls2_file(
            [mtdt(audio_name="song.ogg"), bmpm(simple_notes()), adio(1, blob(b"ogg"))]
        )
    )
    assert beatmap.metadata.audio == "song.ogg"
    assert beatmap.files["song.ogg"] == b"ogg"


def test_non_standard_audio() -> None:
    extension = b"flac"
    payload = u32(len(extension) + 5) + extension + b"audio"
    beatmap = decode_v2(adio((len(extension) << 4) | 15, payload))
    assert beatmap.files == {"audio-00000.flac": b"audio"}


@pytest.mark.parametrize("code", [3, 14, 0x41])
def test_unknown_audio_types_are_fatal(code: int) -> None:
    with pytest.raises(InvalidBeatmapFile, match="audio"):
        decode_v2(adio(code, blob(b"audio")))


def test_live_clear_sound() -> None:
    beatmap = decode_v2(b"LCLR" + bytes([2]) + blob(b"clear"))
    assert beatmap.files == {"live_clear.mp3": b"clear"}


def test_numbered_background_flag() -> None:
    beatmap = decode_v2(flags=V2 | 0x04)
    assert beatmap.beatmaps[0].background == NumberedBackground(4)


def test_simple_background() -> None:
    beatmap = decode_v2(image(b"BIMG", 0, b"main"), flags=V2 | 0x04)
    assert beatmap.beatmaps[0].background == SimpleBackground("background-0.png")
    assert beatmap.files == {"background-0.png": b"main"}


def test_complex_background() -> None:
    beatmap = decode_v2(
        image(b"BIMG", 2, b"right"),
        image(b"BIMG", 0, b"main"),
        image(b"BIMG", 1, b"left"),
        image(b"BIMG", 3, b"lonely top"),
    )
    assert beatmap.beatmaps[0].background == ComplexBackground(
        main="background-0.png",
        left="background-1.png",
        right="background-2.png",
    )
    assert "background-3.png" not in beatmap.files


def test_background_parts_without_main_are_ignored() -> None:
    beatmap = decode_v2(image(b"BIMG", 1, b"left"), image(b"BIMG", 2, b"right"))
    assert beatmap.beatmaps[0].background is None
    assert beatmap.files == {}


def test_custom_units() -> None:
    unit = b"UNIT" + bytes([5]) + bytes([1, 3, 2, 3, 10, 3, 1, 3, 4, 7])
    with pytest.warns(UserWarning):
        beatmap = decode_v2(image(b"UIMG", 3, b"unit"), unit)
    assert beatmap.beatmaps[0].custom_units == [
        CustomUnitInfo(1, "unit_id_3.png"),
        CustomUnitInfo(2, "unit_id_3.png"),
    ]
    assert beatmap.files == {"unit_id_3.png": b"unit"}


def first_note(beatmap: Beatmap) -> Optional[BeatmapTimingMap]:
    notes = beatmap.beatmaps[0].notes
    return notes[0] if notes else None


def test_custom_colors_use_the_legacy_layout() -> None:
    note = BeatmapTimingMap(
        time=1.0, position=5, attribute=15, red=1.0, green=0.0, blue=256 / 511
    )
    attribute = 15 | (256 << 5) | (511 << 23)
    notes = b"BMPM" + u32(1) + raw_note(1000, attribute, 5)
    assert first_note(decode(ls2_file([mtdt(), notes]))) == replace(
        note, simultaneous=False
    )
