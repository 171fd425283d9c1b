"""Conversion between the beatmap model and the tagged value trees stored
inside LS2OVR containers.

Required fields raise ProblematicRequiredField subclasses when they are
missing or unusable. Optional fields that are missing or hold a tag of the
wrong type are read as absent."""

import warnings
from dataclasses import dataclass
from typing import List, Optional

from ls2ovr import nbt, ranks
from ls2ovr.beatmap import (
    BackgroundInfo,
    BeatmapData,
    BeatmapTimingMap,
    ComplexBackground,
    ComposerData,
    CustomUnitInfo,
    Metadata,
    NoteType,
    background_from_string,
    background_to_string,
    mark_simultaneous_notes,
    simultaneous_flags,
)
from ls2ovr.errors import FieldInvalidValue, ProblematicRequiredField
from ls2ovr.formats.notes import (
    LS2OVR_COLOR_LAYOUT,
    decode_color,
    decode_flags,
    encode_color,
    encode_flags,
)
from ls2ovr.utils import none_or


def optional_string(compound: nbt.Compound, name: str) -> Optional[str]:
    return none_or(lambda t: t.value, compound.optional(name, nbt.String))


def load_metadata(root: nbt.Compound) -> Metadata:
    return Metadata(
        title=root.require_string("title"),
        artist=optional_string(root, "artist"),
        source=optional_string(root, "source"),
        composers=load_composers(root.optional("composers", nbt.List)),
        audio=optional_string(root, "audio"),
        artwork=optional_string(root, "artwork"),
        tags=load_tags(root.optional("tags", nbt.List)),
    )


def load_composers(composers: Optional[nbt.List]) -> List[ComposerData]:
    """A single unusable entry invalidates the whole list"""
    if composers is None:
        return []

    res = []
    for entry in composers:
        if not isinstance(entry, nbt.Compound):
            return []
        role = optional_string(entry, "role")
        name = optional_string(entry, "name")
        if not role or not name:
            return []
        res.append(ComposerData(role=role, name=name))

    return res


def load_tags(tags: Optional[nbt.List]) -> Optional[List[str]]:
    if tags is None:
        return None

    if not all(isinstance(t, nbt.String) for t in tags):
        return None

    return [t.value for t in tags]  # type: ignore[union-attr]


def dump_metadata(metadata: Metadata) -> nbt.Compound:
    composers = None
    if metadata.composers:
        composers = nbt.List.of(
            nbt.TagType.COMPOUND,
            [
                nbt.Compound({"role": nbt.String(c.role), "name": nbt.String(c.name)})
                for c in metadata.composers
            ],
        )
    tags = none_or(
        lambda t: nbt.List.of(nbt.TagType.STRING, [nbt.String(s) for s in t]),
        metadata.tags,
    )
    return nbt.Compound.from_optional_entries(
        {
            "title": nbt.String(metadata.title),
            "artist": none_or(nbt.String, metadata.artist),
            "source": none_or(nbt.String, metadata.source),
            "composers": composers,
            "audio": none_or(nbt.String, metadata.audio),
            "artwork": none_or(nbt.String, metadata.artwork),
            "tags": tags,
        }
    )


def load_background(tag: Optional[nbt.Tag]) -> Optional[BackgroundInfo]:
    if isinstance(tag, nbt.String):
        try:
            return background_from_string(tag.value)
        except ValueError as e:
            raise FieldInvalidValue("background", str(e)) from e
    elif isinstance(tag, nbt.Compound):
        return load_complex_background(tag)
    else:
        return None


def load_complex_background(tag: nbt.Compound) -> ComplexBackground:
    main = tag.require_string("main")
    try:
        return ComplexBackground(
            main=main,
            left=optional_string(tag, "left"),
            right=optional_string(tag, "right"),
            top=optional_string(tag, "top"),
            bottom=optional_string(tag, "bottom"),
        )
    except ValueError as e:
        raise FieldInvalidValue("background", str(e)) from e


def dump_background(background: BackgroundInfo) -> nbt.Tag:
    if isinstance(background, ComplexBackground):
        return nbt.Compound.from_optional_entries(
            {
                "main": nbt.String(background.main),
                "left": none_or(nbt.String, background.left),
                "right": none_or(nbt.String, background.right),
                "top": none_or(nbt.String, background.top),
                "bottom": none_or(nbt.String, background.bottom),
            }
        )
    else:
        return nbt.String(background_to_string(background))


def load_custom_units(units: Optional[nbt.List]) -> List[CustomUnitInfo]:
    if units is None:
        return []

    res = []
    for entry in units:
        try:
            res.append(load_custom_unit(entry))
        except ValueError as e:
            warnings.warn(f"Ignoring invalid custom unit : {e}")

    return res


def load_custom_unit(entry: nbt.Tag) -> CustomUnitInfo:
    if not isinstance(entry, nbt.Compound):
        raise FieldInvalidValue("customUnitList", "invalid type")

    return CustomUnitInfo(
        position=entry.require("position", nbt.Byte).value,
        filename=entry.require_string("filename"),
    )


def dump_custom_unit(unit: CustomUnitInfo) -> nbt.Compound:
    return nbt.Compound(
        {
            "position": nbt.Byte(unit.position),
            "filename": nbt.String(unit.filename),
        }
    )


def load_rank_info(root: nbt.Compound, name: str) -> Optional[ranks.RankInfo]:
    tag = root.optional(name, nbt.IntArray)
    if tag is None:
        return None

    explicit = ranks.explicit_or_none(tag.value)
    if explicit is None:
        warnings.warn(f"Ignoring invalid {name} {list(tag.value)}, it will be computed")

    return explicit


def load_note(tag: nbt.Tag) -> BeatmapTimingMap:
    if not isinstance(tag, nbt.Compound):
        raise FieldInvalidValue("map", "invalid type")

    raw_attribute = tag.require("attribute", nbt.Int).value & 0xFFFFFFFF
    color = decode_color(raw_attribute, LS2OVR_COLOR_LAYOUT)
    note_type, swing, simultaneous = decode_flags(tag.require("flags", nbt.Byte).value)
    note_group = tag.require("noteGroup", nbt.Int).value if swing else 0
    length = 0.0
    if note_type == NoteType.LONG:
        length = tag.require("length", nbt.Double).value
    return BeatmapTimingMap(
        time=tag.require("time", nbt.Double).value,
        position=tag.require("position", nbt.Byte).value,
        attribute=color.attribute,
        red=color.red,
        green=color.green,
        blue=color.blue,
        note_type=note_type,
        swing=swing,
        simultaneous=simultaneous,
        note_group=note_group,
        length=length,
    )


def dump_note(note: BeatmapTimingMap) -> nbt.Compound:
    return nbt.Compound.from_optional_entries(
        {
            "time": nbt.Double(note.time),
            "attribute": nbt.Int(encode_color(note, LS2OVR_COLOR_LAYOUT)),
            "position": nbt.Byte(note.position),
            "flags": nbt.Byte(encode_flags(note)),
            "noteGroup": nbt.Int(note.note_group) if note.swing else None,
            "length": (
                nbt.Double(note.length) if note.note_type == NoteType.LONG else None
            ),
        }
    )


def load_notes(root: nbt.Compound, properly_marked: bool) -> List[BeatmapTimingMap]:
    notes = [load_note(n) for n in root.require("map", nbt.List)]
    if not notes:
        raise FieldInvalidValue("map", "empty")

    notes.sort(key=lambda n: n.time)
    if properly_marked:
        if [n.simultaneous for n in notes] != simultaneous_flags(notes):
            warnings.warn(
                "Simultaneous flags are said to be properly marked but don't "
                "match the note timings, they will be recomputed"
            )
            notes = mark_simultaneous_notes(notes)

    return notes


def load_beatmap_data(root: nbt.Compound) -> BeatmapData:
    simultaneous_flag = root.optional("simultaneousFlag", nbt.Byte)
    properly_marked = simultaneous_flag is not None and simultaneous_flag.value != 0
    base_score_per_tap = root.optional("baseScorePerTap", nbt.Int)
    initial_stamina = root.optional("stamina", nbt.Short)
    try:
        return BeatmapData(
            star=root.require("star", nbt.Byte).value,
            star_random=root.require("starRandom", nbt.Byte).value,
            notes=load_notes(root, properly_marked),
            difficulty_name=optional_string(root, "difficultyName"),
            background=load_background(root.entries.get("background")),
            background_random=load_background(root.entries.get("backgroundRandom")),
            custom_units=load_custom_units(root.optional("customUnitList", nbt.List)),
            score_info=load_rank_info(root, "scoreInfo"),
            combo_info=load_rank_info(root, "comboInfo"),
            base_score_per_tap=none_or(lambda t: t.value, base_score_per_tap) or 0,
            initial_stamina=none_or(lambda t: t.value, initial_stamina) or 0,
            simultaneous_flag_properly_marked=properly_marked,
        )
    except ProblematicRequiredField:
        raise
    except ValueError as e:
        raise FieldInvalidValue("beatmap", str(e)) from e


def dump_beatmap_data(beatmap: BeatmapData) -> nbt.Compound:
    assert beatmap.score_info is not None
    assert beatmap.combo_info is not None
    custom_units = None
    if beatmap.custom_units:
        custom_units = nbt.List.of(
            nbt.TagType.COMPOUND, [dump_custom_unit(u) for u in beatmap.custom_units]
        )
    background_random = None
    if beatmap.background_random != beatmap.background:
        background_random = none_or(dump_background, beatmap.background_random)

    return nbt.Compound.from_optional_entries(
        {
            "star": nbt.Byte(beatmap.star),
            "starRandom": nbt.Byte(beatmap.star_random),
            "difficultyName": none_or(nbt.String, beatmap.difficulty_name),
            "background": none_or(dump_background, beatmap.background),
            "backgroundRandom": background_random,
            "customUnitList": custom_units,
            "map": nbt.List.of(
                nbt.TagType.COMPOUND, [dump_note(n) for n in beatmap.notes]
            ),
            "scoreInfo": nbt.IntArray(beatmap.score_info),
            "comboInfo": nbt.IntArray(beatmap.combo_info),
            "baseScorePerTap": nbt.Int(beatmap.base_score_per_tap),
            "stamina": nbt.Short(beatmap.initial_stamina),
            "simultaneousFlag": nbt.Byte(
                int(beatmap.simultaneous_flag_properly_marked)
            ),
        }
    )


@dataclass(frozen=True)
class FileEntry:
    filename: str
    # From the start of the container, always a multiple of 16
    offset: int
    size: int


def load_file_list(root: nbt.Compound) -> List[FileEntry]:
    res = []
    for entry in nbt.unwrap_list(root):
        try:
            res.append(load_file_entry(entry))
        except ValueError as e:
            warnings.warn(f"Ignoring invalid file list entry : {e}")

    return res


def load_file_entry(entry: nbt.Tag) -> FileEntry:
    if not isinstance(entry, nbt.Compound):
        raise FieldInvalidValue("fileList", "invalid type")

    size = entry.require("size", nbt.Int).value
    offset = entry.require("offset", nbt.Int).value
    if size < 0:
        raise FieldInvalidValue("size", "negative")
    if offset < 0:
        raise FieldInvalidValue("offset", "negative")

    return FileEntry(entry.require_string("filename"), offset, size)


def dump_file_list(entries: List[FileEntry]) -> nbt.Compound:
    items = [
        nbt.Compound(
            {
                "filename": nbt.String(e.filename),
                "offset": nbt.Int(e.offset),
                "size": nbt.Int(e.size),
            }
        )
        for e in entries
    ]
    return nbt.wrap_list(nbt.List.of(nbt.TagType.COMPOUND, items))
