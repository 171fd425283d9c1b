from pathlib import Path
from typing import Any, Dict, List, Optional

import simplejson as json
from marshmallow import ValidationError

from ls2ovr.beatmap import (
    Beatmap,
    BeatmapData,
    BeatmapTimingMap,
    Metadata,
    NoteType,
    mark_simultaneous_notes,
)
from ls2ovr.errors import InvalidBeatmapFile
from ls2ovr.formats.notes import LS2_COLOR_LAYOUT, decode_color

from . import schema as sif

EFFECT_TO_NOTE_TYPE = {
    sif.Effect.NORMAL: NoteType.NORMAL,
    sif.Effect.TOKEN: NoteType.TOKEN,
    sif.Effect.LONG: NoteType.LONG,
    sif.Effect.STAR: NoteType.STAR,
}


def load_sif(
    path: Path,
    *,
    title: Optional[str] = None,
    star: int = 1,
    star_random: Optional[int] = None,
    **kwargs: Any,
) -> Beatmap:
    """Note arrays carry nothing but notes, every json file found becomes a
    beatmap of the same song"""
    files = load_folder(path)
    beatmaps = [
        make_beatmap_data(notes, star, star_random or star) for notes in files.values()
    ]
    if not beatmaps:
        raise ValueError(f"No note array found in {path}")

    return Beatmap(metadata=Metadata(title=title or path.stem), beatmaps=beatmaps)


def load_folder(path: Path) -> Dict[Path, List[sif.Note]]:
    if path.is_dir():
        paths = sorted(path.glob("*.json"))
    else:
        paths = [path]

    return {p: load_file(p) for p in paths}


def load_file(path: Path) -> List[sif.Note]:
    with path.open(encoding="utf-8") as f:
        raw = json.load(f)

    try:
        notes: List[sif.Note] = sif.NOTES_SCHEMA.load(raw)
    except ValidationError as e:
        raise InvalidBeatmapFile(f"Invalid note array in {path} : {e.messages}") from e

    return notes


def make_beatmap_data(
    notes: List[sif.Note], star: int, star_random: int
) -> BeatmapData:
    return BeatmapData(
        star=star,
        star_random=star_random,
        notes=load_notes(notes),
        simultaneous_flag_properly_marked=True,
    )


def load_notes(notes: List[sif.Note]) -> List[BeatmapTimingMap]:
    return mark_simultaneous_notes(load_note(n) for n in notes)


def load_note(note: sif.Note) -> BeatmapTimingMap:
    color = decode_color(note.notes_attribute, LS2_COLOR_LAYOUT)
    swing = note.effect > sif.SWING_EFFECT_OFFSET
    note_type = EFFECT_TO_NOTE_TYPE[sif.Effect(note.effect % sif.SWING_EFFECT_OFFSET)]
    return BeatmapTimingMap(
        time=note.timing_sec,
        position=note.position,
        attribute=color.attribute,
        red=color.red,
        green=color.green,
        blue=color.blue,
        note_type=note_type,
        swing=swing,
        note_group=note.notes_level if swing else 0,
        length=note.effect_value if note_type == NoteType.LONG else 0.0,
    )
