"""Legacy LS2 reader

An LS2 file is a header followed by FourCC tagged sections. Sections are
first collected as they appear in the file then assembled into a Beatmap
holding a single BeatmapData, every embedded asset ends up in the file
database under a synthesized name"""

import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, Iterator, List, Optional, Union

import construct as c

from ls2ovr import ranks
from ls2ovr.beatmap import (
    BackgroundInfo,
    Beatmap,
    BeatmapData,
    BeatmapTimingMap,
    ComplexBackground,
    CustomUnitInfo,
    Metadata,
    NumberedBackground,
    SimpleBackground,
    mark_simultaneous_notes,
)
from ls2ovr.errors import InvalidBeatmapFile, UnsupportedFeature
from ls2ovr.formats.notes import (
    LS2_COLOR_LAYOUT,
    LS2_POSITION_MASK,
    decode_color,
    decode_ls2_effect_v1,
    decode_ls2_effect_v2,
)
from ls2ovr.utils import allocate_filename, random_suffixes

from . import construct
from .construct import FourCC

DEFAULT_TITLE = "unknown"


def load_ls2(
    path: Path, *, suffixes: Optional[Iterator[str]] = None, **kwargs: Any
) -> Beatmap:
    with path.open("rb") as f:
        return read_ls2(f, suffixes=suffixes)


def read_ls2(stream: BinaryIO, suffixes: Optional[Iterator[str]] = None) -> Beatmap:
    """suffixes is the source of the random strings used to make
    synthesized file names unique"""
    if suffixes is None:
        suffixes = random_suffixes()

    try:
        sections = read_sections(stream)
        return make_beatmap(sections, suffixes)
    except c.ConstructError as e:
        raise InvalidBeatmapFile(f"Truncated or malformed LS2 file : {e}") from e


@dataclass
class Audio:
    extension: str
    data: bytes


Cover = Union[construct.CoverV1, construct.CoverV2]


@dataclass
class Sections:
    header: construct.Header
    metadata: List[construct.SongMetadata] = field(default_factory=list)
    notes: List[BeatmapTimingMap] = field(default_factory=list)
    score_info: List[List[int]] = field(default_factory=list)
    storyboards: List[bytes] = field(default_factory=list)
    backgrounds: List[construct.Image] = field(default_factory=list)
    unit_images: List[construct.Image] = field(default_factory=list)
    units: List[List[construct.UnitDefinition]] = field(default_factory=list)
    files: List[construct.File] = field(default_factory=list)
    audio: List[Audio] = field(default_factory=list)
    live_clear: List[Audio] = field(default_factory=list)
    covers: List[Cover] = field(default_factory=list)

    @property
    def is_v2(self) -> bool:
        return bool(self.header.flags & construct.HEADER_V2)


def read_sections(stream: BinaryIO) -> Sections:
    header = construct.header.parse_stream(stream)
    if header.signature != construct.SIGNATURE:
        raise InvalidBeatmapFile("Invalid LS2 header")

    sections = Sections(header=header)
    for _ in range(header.section_count):
        fourcc = construct.fourcc.parse_stream(stream)
        try:
            reader = SECTION_READERS[fourcc]
        except KeyError:
            raise InvalidBeatmapFile(f"Unknown section : {fourcc!r}")
        reader(stream, sections)

    return sections


def read_mtdt(stream: BinaryIO, sections: Sections) -> None:
    mtdt = construct.mtdt.parse_stream(stream)
    if mtdt.flags & construct.MTDT_STAR and star(mtdt) == 0:
        raise InvalidBeatmapFile("Star difficulty is flagged but zero")
    if mtdt.flags & construct.MTDT_STAR_RANDOM and star_random(mtdt) == 0:
        raise InvalidBeatmapFile("Random star difficulty is flagged but zero")
    sections.metadata.append(mtdt)


def star(mtdt: construct.SongMetadata) -> int:
    return mtdt.star_info & 0x0F


def star_random(mtdt: construct.SongMetadata) -> int:
    return mtdt.star_info >> 4


def read_bmpm(stream: BinaryIO, sections: Sections) -> None:
    raw_notes = construct.bmpm.parse_stream(stream)
    sections.notes.extend(load_note(n, sections.is_v2) for n in raw_notes)


def read_bmpt(stream: BinaryIO, sections: Sections) -> None:
    raise UnsupportedFeature("BMPT sections (tempo-relative timing) are not supported")


def load_note(raw: construct.Note, is_v2: bool) -> BeatmapTimingMap:
    if raw.attribute == construct.TEMPO_RELATIVE_ATTRIBUTE:
        raise UnsupportedFeature("Tempo-relative notes are not supported")

    color = decode_color(raw.attribute, LS2_COLOR_LAYOUT)
    if is_v2:
        fields = decode_ls2_effect_v2(raw.attribute, raw.effect)
    else:
        fields = decode_ls2_effect_v1(raw.effect)

    try:
        return BeatmapTimingMap(
            time=raw.time_in_ms * 0.001,
            position=raw.effect & LS2_POSITION_MASK,
            attribute=color.attribute,
            red=color.red,
            green=color.green,
            blue=color.blue,
            note_type=fields.note_type,
            swing=fields.swing,
            note_group=fields.note_group,
            length=fields.length,
        )
    except ValueError as e:
        raise InvalidBeatmapFile(f"Invalid note : {e}") from e


def read_scri(stream: BinaryIO, sections: Sections) -> None:
    sections.score_info.append(list(construct.scri.parse_stream(stream)))


def read_sryl(stream: BinaryIO, sections: Sections) -> None:
    storyboard = construct.sryl.parse_stream(stream)
    if len(storyboard) < 2:
        raise InvalidBeatmapFile("Storyboard is too short")
    if looks_compressed(storyboard):
        raise UnsupportedFeature("Compressed storyboards are not supported")
    sections.storyboards.append(storyboard)


ZLIB_SECOND_BYTES = {0x01, 0x5E, 0x9C, 0xDA}


def looks_compressed(data: bytes) -> bool:
    is_gzip = data[:2] == b"\x1f\x8b"
    is_zlib = data[0] == 0x78 and data[1] in ZLIB_SECOND_BYTES
    return is_gzip or is_zlib


def read_uimg(stream: BinaryIO, sections: Sections) -> None:
    sections.unit_images.append(construct.image.parse_stream(stream))


def read_bimg(stream: BinaryIO, sections: Sections) -> None:
    sections.backgrounds.append(construct.image.parse_stream(stream))


def read_unit(stream: BinaryIO, sections: Sections) -> None:
    sections.units.append(list(construct.unit.parse_stream(stream)))


def read_data(stream: BinaryIO, sections: Sections) -> None:
    sections.files.append(construct.data_file.parse_stream(stream))


def read_audio(stream: BinaryIO) -> Audio:
    code = construct.audio_code.parse_stream(stream)
    if code.type == construct.AUDIO_NON_STANDARD:
        raw = construct.non_standard_audio.parse_stream(
            stream, extension_length=code.extension_length
        )
        return Audio(raw.extension, raw.data)

    extension = construct.AUDIO_EXTENSIONS.get(code.type)
    if extension is None or code.extension_length != 0:
        raise InvalidBeatmapFile("Unknown audio type")

    return Audio(extension, construct.ls2_bytes.parse_stream(stream))


def read_adio(stream: BinaryIO, sections: Sections) -> None:
    sections.audio.append(read_audio(stream))


def read_lclr(stream: BinaryIO, sections: Sections) -> None:
    sections.live_clear.append(read_audio(stream))


def read_covr(stream: BinaryIO, sections: Sections) -> None:
    if sections.is_v2:
        sections.covers.append(construct.cover_v2.parse_stream(stream))
    else:
        sections.covers.append(construct.cover_v1.parse_stream(stream))


SECTION_READERS: Dict[bytes, Callable[[BinaryIO, Sections], None]] = {
    FourCC.MTDT: read_mtdt,
    FourCC.BMPM: read_bmpm,
    FourCC.BMPT: read_bmpt,
    FourCC.SCRI: read_scri,
    FourCC.SRYL: read_sryl,
    FourCC.UIMG: read_uimg,
    FourCC.BIMG: read_bimg,
    FourCC.UNIT: read_unit,
    FourCC.DATA: read_data,
    FourCC.ADIO: read_adio,
    FourCC.LCLR: read_lclr,
    FourCC.COVR: read_covr,
}


class FileDatabase:
    """The files of the beatmap being built, synthesized names get a random
    suffix until they don't collide with the names already in there"""

    def __init__(self, suffixes: Iterator[str]):
        self.files: Dict[str, bytes] = {}
        self.suffixes = suffixes

    def add_declared(self, file: construct.File) -> None:
        if file.filename in self.files:
            warnings.warn(f"Duplicate DATA section for {file.filename!r}, ignoring it")
            return

        self.files[file.filename] = file.data

    def add(self, first_choice: Optional[str], template: str, data: bytes) -> str:
        taken = self.files.keys()
        name = allocate_filename(first_choice, template, taken, self.suffixes)
        self.files[name] = data
        return name


def make_beatmap(sections: Sections, suffixes: Iterator[str]) -> Beatmap:
    header = sections.header
    database = FileDatabase(suffixes)
    for file in sections.files:
        database.add_declared(file)

    title = DEFAULT_TITLE
    audio_name = None
    star_ = star_random_ = 1
    score_info = combo_info = None
    if sections.metadata:
        mtdt = sections.metadata[0]
        title = mtdt.song_name or title
        audio_name = mtdt.audio_name or None
        if mtdt.flags & construct.MTDT_STAR:
            star_ = star_random_ = star(mtdt)
        if mtdt.flags & construct.MTDT_STAR_RANDOM:
            star_random_ = star_random(mtdt)
        if mtdt.flags & construct.MTDT_SCORE_INFO:
            score_info = explicit_rank_info("score", mtdt.score_info)
        if mtdt.flags & construct.MTDT_COMBO_INFO:
            combo_info = explicit_rank_info("combo", mtdt.combo_info)
    elif sections.is_v2:
        raise InvalidBeatmapFile("Missing MTDT section")

    artwork = None
    if sections.covers:
        cover = sections.covers[0]
        if title == DEFAULT_TITLE and cover.title:
            title = cover.title
        artwork = database.add("cover.png", "cover-{suffix}.png", cover.image)

    if not sections.is_v2 and score_info is None and sections.score_info:
        score_info = explicit_rank_info("score", sections.score_info[0])

    if sections.storyboards:
        database.add(
            "storyboard.lua", "storyboard-{suffix}.lua", sections.storyboards[0]
        )

    if sections.audio:
        audio = sections.audio[0]
        audio_name = database.add(
            audio_name, f"audio-{{suffix}}.{audio.extension}", audio.data
        )

    background: Optional[BackgroundInfo] = None
    if header.flags & construct.HEADER_NUMBERED_BACKGROUND:
        number = header.flags & construct.HEADER_NUMBERED_BACKGROUND
        background = NumberedBackground(number)
    if sections.backgrounds:
        background = make_background(sections.backgrounds, database) or background

    if sections.live_clear:
        live_clear = sections.live_clear[0]
        database.add(
            f"live_clear.{live_clear.extension}",
            f"live_clear-{{suffix}}.{live_clear.extension}",
            live_clear.data,
        )

    custom_units = []
    if sections.units:
        custom_units = make_custom_units(
            sections.units[0], sections.unit_images, database
        )

    try:
        beatmap_data = BeatmapData(
            star=star_,
            star_random=star_random_,
            notes=mark_simultaneous_notes(sections.notes),
            background=background,
            custom_units=custom_units,
            score_info=score_info,
            combo_info=combo_info,
            base_score_per_tap=header.score_per_tap,
            initial_stamina=(
                header.stamina if header.stamina <= construct.MAX_STAMINA else 0
            ),
            simultaneous_flag_properly_marked=True,
        )
    except ValueError as e:
        raise InvalidBeatmapFile(f"Invalid beatmap : {e}") from e

    return Beatmap(
        metadata=Metadata(title=title, audio=audio_name, artwork=artwork),
        beatmaps=[beatmap_data],
        files=database.files,
    )


def explicit_rank_info(name: str, values: List[int]) -> Optional[ranks.RankInfo]:
    explicit = ranks.explicit_or_none(values)
    if explicit is None:
        warnings.warn(f"Ignoring invalid {name} info {values}, it will be computed")

    return explicit


# main, left, right, top, bottom
BACKGROUND_PARTS = 5


def make_background(
    images: List[construct.Image], database: FileDatabase
) -> Optional[BackgroundInfo]:
    parts: Dict[int, bytes] = {}
    for image in images:
        if image.index < BACKGROUND_PARTS:
            parts.setdefault(image.index, image.data)

    if 0 not in parts:
        return None

    main = add_background_part(0, parts[0], database)
    names = {}
    for pair in ((1, 2), (3, 4)):
        if all(i in parts for i in pair):
            for i in pair:
                names[i] = add_background_part(i, parts[i], database)

    if not names:
        return SimpleBackground(main)

    return ComplexBackground(
        main=main,
        left=names.get(1),
        right=names.get(2),
        top=names.get(3),
        bottom=names.get(4),
    )


def add_background_part(index: int, data: bytes, database: FileDatabase) -> str:
    return database.add(
        f"background-{index}.png", f"background-{index}-{{suffix}}.png", data
    )


def make_custom_units(
    definitions: List[construct.UnitDefinition],
    images: List[construct.Image],
    database: FileDatabase,
) -> List[CustomUnitInfo]:
    images_by_index: Dict[int, bytes] = {}
    for image in images:
        images_by_index.setdefault(image.index, image.data)

    filenames: Dict[int, str] = {}
    units: Dict[int, CustomUnitInfo] = {}
    for definition in definitions:
        data = images_by_index.get(definition.image_index)
        if data is None:
            continue

        if not 1 <= definition.position <= 9:
            warnings.warn(f"Ignoring custom unit at position {definition.position}")
            continue

        if definition.position in units:
            warnings.warn(f"Duplicate custom unit at position {definition.position}")
            continue

        if definition.image_index not in filenames:
            filenames[definition.image_index] = database.add(
                f"unit_id_{definition.image_index}.png",
                f"unit_id_{definition.image_index}-{{suffix}}.png",
                data,
            )

        units[definition.position] = CustomUnitInfo(
            position=definition.position,
            filename=filenames[definition.image_index],
        )

    return list(units.values())
