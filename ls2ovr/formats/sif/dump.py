from pathlib import Path
from typing import Any, Dict, List

import simplejson as json

from ls2ovr.beatmap import Beatmap, BeatmapData, BeatmapTimingMap, NoteType
from ls2ovr.formats.notes import LS2_COLOR_LAYOUT, encode_color

from . import schema as sif

NOTE_TYPE_TO_EFFECT = {
    NoteType.NORMAL: sif.Effect.NORMAL,
    NoteType.TOKEN: sif.Effect.TOKEN,
    NoteType.LONG: sif.Effect.LONG,
    NoteType.STAR: sif.Effect.STAR,
}

FILE_NAME_TEMPLATE = "beatmap-{index}.json"


def dump_sif(beatmap: Beatmap, path: Path, **kwargs: Any) -> Dict[Path, bytes]:
    """One json file per beatmap, following FILE_NAME_TEMPLATE when given a
    folder. Everything but the notes is lost"""
    res = {}
    for i, data in enumerate(beatmap.beatmaps):
        res[beatmap_path(path, i, len(beatmap.beatmaps))] = dump_sif_bytes(data)

    return res


def beatmap_path(path: Path, index: int, total: int) -> Path:
    if path.is_dir():
        return path / FILE_NAME_TEMPLATE.format(index=index)
    elif total == 1:
        return path
    else:
        return path.with_name(f"{path.stem}-{index}{path.suffix}")


def dump_sif_bytes(data: BeatmapData) -> bytes:
    notes = sif.NOTES_SCHEMA.dump(dump_notes(data.notes))
    return json.dumps(notes, indent=4).encode("utf-8")


def dump_notes(notes: List[BeatmapTimingMap]) -> List[sif.Note]:
    return [dump_note(n) for n in notes]


def dump_note(note: BeatmapTimingMap) -> sif.Note:
    effect = NOTE_TYPE_TO_EFFECT[note.note_type].value
    if note.swing:
        effect += sif.SWING_EFFECT_OFFSET

    return sif.Note(
        timing_sec=note.time,
        position=note.position,
        effect=effect,
        effect_value=(
            note.length if note.note_type == NoteType.LONG else sif.DEFAULT_EFFECT_VALUE
        ),
        notes_attribute=encode_color(note, LS2_COLOR_LAYOUT),
        notes_level=note.note_group if note.swing else 1,
    )
