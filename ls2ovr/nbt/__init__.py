"""The tagged value tree (a.k.a NBT) used to store metadata and beatmap
records inside LS2OVR files"""

from .codec import (
    NbtFormatError,
    build_document,
    parse_document,
    unwrap_list,
    wrap_list,
)
from .tags import (
    Byte,
    ByteArray,
    Compound,
    Double,
    Float,
    Int,
    IntArray,
    List,
    Long,
    LongArray,
    Short,
    String,
    Tag,
    TagType,
)
