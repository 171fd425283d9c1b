"""The legacy LS2 format described using construct.
see https://construct.readthedocs.io/en/latest/index.html

All integers are little endian, strings and byte arrays are prefixed with
their length as a u32"""

from dataclasses import dataclass
from typing import List

import construct as c
import construct_typed as ct

SIGNATURE = b"livesim2"

HEADER_NUMBERED_BACKGROUND = 0x04
HEADER_V2 = 0x80
MAX_STAMINA = 127


@dataclass
class Header(ct.DataclassMixin):
    signature: bytes = ct.csfield(c.Bytes(8))
    section_count: int = ct.csfield(c.Int16ul)
    flags: int = ct.csfield(c.Int8ul)
    stamina: int = ct.csfield(c.Int8ul)
    score_per_tap: int = ct.csfield(c.Int16ul)


header = ct.DataclassStruct(Header)

fourcc = c.Bytes(4)
ls2_string = c.PascalString(c.Int32ul, "utf8")
ls2_bytes = c.Prefixed(c.Int32ul, c.GreedyBytes)


class FourCC:
    MTDT = b"MTDT"
    BMPM = b"BMPM"
    # Tempo-relative timing
    BMPT = b"BMPT"
    SCRI = b"SCRI"
    SRYL = b"SRYL"
    UIMG = b"UIMG"
    BIMG = b"BIMG"
    UNIT = b"UNIT"
    DATA = b"DATA"
    ADIO = b"ADIO"
    LCLR = b"LCLR"
    COVR = b"COVR"


MTDT_SCORE_INFO = 0x01
MTDT_COMBO_INFO = 0x02
MTDT_STAR = 0x04
MTDT_STAR_RANDOM = 0x08


@dataclass
class SongMetadata(ct.DataclassMixin):
    flags: int = ct.csfield(c.Int8ul)
    # low nibble : star, high nibble : star random
    star_info: int = ct.csfield(c.Int8ul)
    song_name: str = ct.csfield(ls2_string)
    audio_name: str = ct.csfield(ls2_string)
    score_info: List[int] = ct.csfield(c.Array(4, c.Int32ul))
    combo_info: List[int] = ct.csfield(c.Array(4, c.Int32ul))


mtdt = ct.DataclassStruct(SongMetadata)


# A note with this attribute value uses tempo-relative timing
TEMPO_RELATIVE_ATTRIBUTE = 0xFFFFFFFF


@dataclass
class Note(ct.DataclassMixin):
    time_in_ms: int = ct.csfield(c.Int32ul)
    attribute: int = ct.csfield(c.Int32ul)
    effect: int = ct.csfield(c.Int32ul)


bmpm = c.PrefixedArray(c.Int32ul, ct.DataclassStruct(Note))

scri = c.Array(4, c.Int32ul)

sryl = ls2_bytes


@dataclass
class Image(ct.DataclassMixin):
    index: int = ct.csfield(c.Int8ul)
    data: bytes = ct.csfield(ls2_bytes)


image = ct.DataclassStruct(Image)


@dataclass
class UnitDefinition(ct.DataclassMixin):
    position: int = ct.csfield(c.Int8ul)
    image_index: int = ct.csfield(c.Int8ul)


unit = c.PrefixedArray(c.Int8ul, ct.DataclassStruct(UnitDefinition))


@dataclass
class File(ct.DataclassMixin):
    filename: str = ct.csfield(ls2_string)
    data: bytes = ct.csfield(ls2_bytes)


data_file = ct.DataclassStruct(File)

AUDIO_EXTENSIONS = {0: "wav", 1: "ogg", 2: "mp3"}
AUDIO_NON_STANDARD = 15

# The low nibble of the first byte is the audio type, when the type is
# "non-standard" the high nibble is the length of the file extension
audio_code = c.BitStruct(
    "extension_length" / c.BitsInteger(4),
    "type" / c.BitsInteger(4),
)

non_standard_audio = c.Struct(
    "total_size" / c.Int32ul,
    "extension" / c.PaddedString(c.this._.extension_length, "utf8"),
    "data" / c.Bytes(c.this.total_size - c.this._.extension_length),
)


@dataclass
class CoverV1(ct.DataclassMixin):
    title: str = ct.csfield(ls2_string)
    description: str = ct.csfield(ls2_string)
    image: bytes = ct.csfield(ls2_bytes)


@dataclass
class CoverV2(ct.DataclassMixin):
    image: bytes = ct.csfield(ls2_bytes)
    title: str = ct.csfield(ls2_string)
    description: str = ct.csfield(ls2_string)


cover_v1 = ct.DataclassStruct(CoverV1)
cover_v2 = ct.DataclassStruct(CoverV2)
