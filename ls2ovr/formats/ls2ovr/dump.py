"""LS2OVR container writer"""

import gzip
import zlib
from pathlib import Path
from typing import Any, BinaryIO, Dict, List

from ls2ovr import nbt
from ls2ovr.beatmap import Beatmap
from ls2ovr.errors import UnsupportedFeature
from ls2ovr.utils import align_next_multiple

from . import schema
from .construct import (
    FILE_ALIGNMENT,
    MAX_BEATMAPS,
    RESERVED_COMPRESSIONS,
    TARGET_VERSION,
    Compression,
    FormatField,
    beatmap_records,
    container,
)


def dump_ls2ovr(
    beatmap: Beatmap,
    path: Path,
    *,
    compression: Compression = Compression.GZIP,
    **kwargs: Any,
) -> Dict[Path, bytes]:
    if path.is_dir():
        filepath = path / f"{beatmap.metadata.title}.ls2ovr"
    else:
        filepath = path

    return {filepath: dump_ls2ovr_bytes(beatmap, compression)}


def write_ls2ovr(
    beatmap: Beatmap,
    stream: BinaryIO,
    compression: Compression = Compression.GZIP,
) -> None:
    stream.write(dump_ls2ovr_bytes(beatmap, compression))


def dump_ls2ovr_bytes(
    beatmap: Beatmap, compression: Compression = Compression.GZIP
) -> bytes:
    compression = Compression(compression)
    if compression in RESERVED_COMPRESSIONS:
        raise UnsupportedFeature(f"Unsupported compression : {compression.name}")
    if len(beatmap.beatmaps) > MAX_BEATMAPS:
        raise ValueError(
            f"An LS2OVR file can hold at most {MAX_BEATMAPS} beatmaps, "
            f"got {len(beatmap.beatmaps)}"
        )

    metadata = nbt.build_document(schema.dump_metadata(beatmap.metadata))
    records = [
        dict(data=nbt.build_document(schema.dump_beatmap_data(b)))
        for b in beatmap.beatmaps
    ]
    payload = beatmap_records.build(dict(records=records))
    header = dict(
        format=FormatField(eight_bit_safe=True, version=TARGET_VERSION),
        metadata=dict(data=metadata),
        compression=compression.value,
        uncompressed_size=len(payload),
        payload=compress(compression, payload),
    )

    # Offsets depend on the size of the file list itself, a first pass with
    # placeholder offsets gives the size of everything before the files
    placeholders = [
        schema.FileEntry(name, 0, len(data)) for name, data in beatmap.files.items()
    ]
    header_size = len(build_header(header, placeholders))
    entries = place_files(beatmap.files, align_next_multiple(header_size))
    res = bytearray(build_header(header, entries))
    if len(res) != header_size:
        raise ValueError("The file list changed size between both passes")

    for entry in entries:
        res.extend(bytes(entry.offset - len(res)))
        res.extend(beatmap.files[entry.filename])

    return bytes(res)


def build_header(header: Dict[str, Any], entries: List[schema.FileEntry]) -> bytes:
    file_list = nbt.build_document(schema.dump_file_list(entries))
    return container.build(dict(header, file_list=file_list))


def place_files(files: Dict[str, bytes], start: int) -> List[schema.FileEntry]:
    res = []
    offset = start
    for name, data in files.items():
        res.append(schema.FileEntry(name, offset, len(data)))
        offset = align_next_multiple(offset + len(data), FILE_ALIGNMENT)

    return res


def compress(compression: Compression, data: bytes) -> bytes:
    if compression == Compression.GZIP:
        return gzip.compress(data, mtime=0)
    elif compression == Compression.ZLIB:
        return zlib.compress(data)
    else:
        return data
