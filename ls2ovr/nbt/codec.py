"""Binary (big endian, uncompressed) representation of the tagged value tree.
Leaf payloads are described using construct, compounds and lists are walked
recursively.
see https://construct.readthedocs.io/en/latest/index.html"""

import io
from typing import BinaryIO, Dict

import construct as c

from . import tags as t

MAX_DEPTH = 256

tag_id = c.Int8ub
tag_name = c.PascalString(c.Int16ub, "utf8")
list_length = c.Int32sb

LEAF_FORMATS: Dict[t.TagType, c.Construct] = {
    t.TagType.BYTE: c.Int8ub,
    t.TagType.SHORT: c.Int16sb,
    t.TagType.INT: c.Int32sb,
    t.TagType.LONG: c.Int64sb,
    t.TagType.FLOAT: c.Float32b,
    t.TagType.DOUBLE: c.Float64b,
    t.TagType.BYTE_ARRAY: c.Prefixed(c.Int32sb, c.GreedyBytes),
    t.TagType.STRING: tag_name,
    t.TagType.INT_ARRAY: c.PrefixedArray(c.Int32sb, c.Int32sb),
    t.TagType.LONG_ARRAY: c.PrefixedArray(c.Int32sb, c.Int64sb),
}


class NbtFormatError(ValueError):
    pass


def parse_document(data: bytes) -> t.Compound:
    """Parse a whole document, its root has to be a compound"""
    stream = io.BytesIO(data)
    try:
        root_type = read_tag_type(stream)
        if root_type != t.TagType.COMPOUND:
            raise NbtFormatError(f"Root tag must be a compound, not {root_type.name}")
        tag_name.parse_stream(stream)
        root = read_compound(stream, depth=0)
    except (c.ConstructError, UnicodeDecodeError) as e:
        raise NbtFormatError(f"Malformed tagged value tree : {e}") from e

    return root


def build_document(root: t.Compound, name: str = "") -> bytes:
    stream = io.BytesIO()
    try:
        tag_id.build_stream(t.TagType.COMPOUND, stream)
        tag_name.build_stream(name, stream)
        write_compound(root, stream)
    except c.ConstructError as e:
        # Strings longer than 65535 bytes, out of range integers ...
        raise NbtFormatError(f"Can't encode tagged value tree : {e}") from e

    return stream.getvalue()


LIST_WRAPPER_KEY = "list"


def wrap_list(items: t.List) -> t.Compound:
    """Documents can't have a list as their root, put it in a compound"""
    return t.Compound({LIST_WRAPPER_KEY: items})


def unwrap_list(root: t.Compound) -> t.List:
    return root.require(LIST_WRAPPER_KEY, t.List)


def read_tag_type(stream: BinaryIO) -> t.TagType:
    raw = tag_id.parse_stream(stream)
    try:
        return t.TagType(raw)
    except ValueError:
        raise NbtFormatError(f"Unknown tag type : {raw}")


def read_payload(tag_type: t.TagType, stream: BinaryIO, depth: int) -> t.Tag:
    if depth > MAX_DEPTH:
        raise NbtFormatError("Tagged value tree is nested too deeply")

    if tag_type == t.TagType.COMPOUND:
        return read_compound(stream, depth)
    elif tag_type == t.TagType.LIST:
        return read_list(stream, depth)
    elif tag_type == t.TagType.END:
        raise NbtFormatError("Unexpected END tag")

    value = LEAF_FORMATS[tag_type].parse_stream(stream)
    return t.TAG_CLASSES[tag_type](value)  # type: ignore[call-arg]


def read_compound(stream: BinaryIO, depth: int) -> t.Compound:
    entries = {}
    while True:
        tag_type = read_tag_type(stream)
        if tag_type == t.TagType.END:
            break

        name = tag_name.parse_stream(stream)
        entries[name] = read_payload(tag_type, stream, depth + 1)

    return t.Compound(entries)


def read_list(stream: BinaryIO, depth: int) -> t.List:
    item_type = read_tag_type(stream)
    length = list_length.parse_stream(stream)
    if length < 0:
        raise NbtFormatError(f"Negative list length : {length}")
    if length > 0 and item_type == t.TagType.END:
        raise NbtFormatError("Non-empty list of END tags")

    items = [read_payload(item_type, stream, depth + 1) for _ in range(length)]
    return t.List(item_type, items)


def write_payload(tag: t.Tag, stream: BinaryIO) -> None:
    if isinstance(tag, t.Compound):
        write_compound(tag, stream)
    elif isinstance(tag, t.List):
        write_list(tag, stream)
    else:
        LEAF_FORMATS[tag.tag_type].build_stream(tag.value, stream)


def write_compound(compound: t.Compound, stream: BinaryIO) -> None:
    for name, tag in compound.entries.items():
        tag_id.build_stream(tag.tag_type, stream)
        tag_name.build_stream(name, stream)
        write_payload(tag, stream)

    tag_id.build_stream(t.TagType.END, stream)


def write_list(list_: t.List, stream: BinaryIO) -> None:
    tag_id.build_stream(list_.item_type, stream)
    list_length.build_stream(len(list_), stream)
    for item in list_:
        write_payload(item, stream)
