"""Bit level packing of a note's color and type fields, shared by every
binary format"""

from dataclasses import dataclass
from typing import Tuple

from ls2ovr.beatmap import CUSTOM_COLOR_ATTRIBUTE, BeatmapTimingMap, NoteType


@dataclass(frozen=True)
class ColorLayout:
    """Bit offsets of the three 9 bit color channels inside an attribute
    value"""

    blue: int
    green: int
    red: int


# LS2OVR note "attribute" field : rrrrrrrr rggggggg ggbbbbbb bbbbaaaa
LS2OVR_COLOR_LAYOUT = ColorLayout(blue=4, green=13, red=22)
# LS2 files and SIF json arrays : rrrrrrrr rggggggg ggbbbbbb bbbsaaaa
# (s is the v2 swing bit)
LS2_COLOR_LAYOUT = ColorLayout(blue=5, green=14, red=23)

CHANNEL_MASK = 0x1FF
CHANNEL_MAX = 511


@dataclass(frozen=True)
class DecodedColor:
    attribute: int
    red: float = 1.0
    green: float = 1.0
    blue: float = 1.0


def decode_color(raw: int, layout: ColorLayout) -> DecodedColor:
    attribute = raw & 0xF
    if attribute != CUSTOM_COLOR_ATTRIBUTE:
        return DecodedColor(attribute)

    return DecodedColor(
        attribute=attribute,
        red=((raw >> layout.red) & CHANNEL_MASK) / CHANNEL_MAX,
        green=((raw >> layout.green) & CHANNEL_MASK) / CHANNEL_MAX,
        blue=((raw >> layout.blue) & CHANNEL_MASK) / CHANNEL_MAX,
    )


def encode_channel(value: float) -> int:
    return round(value * CHANNEL_MAX) & CHANNEL_MASK


def encode_color(note: BeatmapTimingMap, layout: ColorLayout) -> int:
    raw = note.attribute
    if note.attribute == CUSTOM_COLOR_ATTRIBUTE:
        raw |= encode_channel(note.blue) << layout.blue
        raw |= encode_channel(note.green) << layout.green
        raw |= encode_channel(note.red) << layout.red

    return raw


@dataclass(frozen=True)
class NoteFields:
    note_type: NoteType = NoteType.NORMAL
    swing: bool = False
    note_group: int = 0
    length: float = 0.0


# LS2OVR "flags" byte
FLAG_TYPE_MASK = 0b0011
FLAG_SWING = 0b0100
FLAG_SIMULTANEOUS = 0b1000


def decode_flags(flags: int) -> Tuple[NoteType, bool, bool]:
    """Returns (note type, swing, simultaneous)"""
    note_type = NoteType(flags & FLAG_TYPE_MASK)
    swing = bool(flags & FLAG_SWING) and note_type != NoteType.STAR
    simultaneous = bool(flags & FLAG_SIMULTANEOUS)
    return note_type, swing, simultaneous


def encode_flags(note: BeatmapTimingMap) -> int:
    flags = note.note_type.value
    if note.swing:
        flags |= FLAG_SWING
    if note.simultaneous:
        flags |= FLAG_SIMULTANEOUS

    return flags


# Legacy LS2 notes, the time unit is the millisecond
LS2_POSITION_MASK = 0xF
LS2_V2_SWING = 0x10

V2_TYPE_TO_NOTE_TYPE = {
    0: NoteType.NORMAL,
    1: NoteType.TOKEN,
    2: NoteType.LONG,
    3: NoteType.STAR,
}
NOTE_TYPE_TO_V2_TYPE = {v: k for k, v in V2_TYPE_TO_NOTE_TYPE.items()}

V1_LONG = 0x80000000
V1_TOKEN = 0x10
V1_STAR = 0x20
# Notes with both the token and star bits set are swing notes with this
# group, nobody knows why
V1_TOKEN_STAR_GROUP = 2


def decode_ls2_effect_v2(attribute: int, effect: int) -> NoteFields:
    swing = bool(attribute & LS2_V2_SWING)
    note_type = V2_TYPE_TO_NOTE_TYPE[(effect >> 4) & 0x3]
    if note_type == NoteType.LONG:
        return NoteFields(note_type, swing, length=((effect >> 6) & 0x3FFFF) * 0.001)
    elif note_type == NoteType.STAR:
        return NoteFields(note_type, swing=False)
    else:
        return NoteFields(note_type, swing)


def decode_ls2_effect_v1(effect: int) -> NoteFields:
    if effect & V1_LONG:
        return NoteFields(
            NoteType.LONG, length=((effect & 0x3FFFFFF0) >> 4) * 0.001
        )

    is_token = bool(effect & V1_TOKEN)
    is_star = bool(effect & V1_STAR)
    if is_token and is_star:
        return NoteFields(NoteType.NORMAL, swing=True, note_group=V1_TOKEN_STAR_GROUP)
    elif is_token:
        return NoteFields(NoteType.TOKEN)
    elif is_star:
        return NoteFields(NoteType.STAR)
    else:
        return NoteFields(NoteType.NORMAL)


def encode_ls2_note_v2(note: BeatmapTimingMap) -> Tuple[int, int]:
    """Returns the (attribute, effect) pair of a v2 LS2 note"""
    attribute = encode_color(note, LS2_COLOR_LAYOUT)
    if note.swing:
        attribute |= LS2_V2_SWING

    effect = note.position | (NOTE_TYPE_TO_V2_TYPE[note.note_type] << 4)
    if note.note_type == NoteType.LONG:
        effect |= (round(note.length * 1000) & 0x3FFFF) << 6

    return attribute, effect


def encode_ls2_note_v1(note: BeatmapTimingMap) -> Tuple[int, int]:
    attribute = encode_color(note, LS2_COLOR_LAYOUT)
    effect = note.position
    if note.note_type == NoteType.LONG:
        effect |= V1_LONG | ((round(note.length * 1000) << 4) & 0x3FFFFFF0)
    elif note.note_type == NoteType.TOKEN:
        effect |= V1_TOKEN
    elif note.note_type == NoteType.STAR:
        effect |= V1_STAR
    elif note.swing:
        effect |= V1_TOKEN | V1_STAR

    return attribute, effect
