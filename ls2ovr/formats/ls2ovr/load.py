"""LS2OVR container reader

Anything wrong with the framing is fatal and raises InvalidBeatmapFile.
A beatmap record that fails its checksum or can't be decoded is skipped with
a warning, so is a file that can't be extracted."""

import gzip
import io
import warnings
import zlib
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Tuple

import construct as c

from ls2ovr import nbt
from ls2ovr.beatmap import Beatmap, BeatmapData
from ls2ovr.errors import InvalidBeatmapFile, UnsupportedFeature

from . import schema
from .construct import (
    EOF_MARKER,
    FILE_ALIGNMENT,
    RESERVED_COMPRESSIONS,
    SIGNATURE,
    TARGET_VERSION,
    TRANSMISSION_CHECK,
    Compression,
    compression_header,
    format_field,
    md5,
    md5_field,
    size_field,
)


def load_ls2ovr(path: Path, **kwargs: Any) -> Beatmap:
    with path.open("rb") as f:
        return read_ls2ovr(f)


def read_ls2ovr(stream: BinaryIO) -> Beatmap:
    try:
        return ContainerReader(stream).read()
    except c.ConstructError as e:
        raise InvalidBeatmapFile(f"Truncated or malformed LS2OVR file : {e}") from e


class ContainerReader:
    """Reads the container front to back, keeping track of how many bytes
    have been consumed since the signature so file offsets can be resolved
    without ever seeking backwards"""

    def __init__(self, stream: BinaryIO):
        self.stream = stream
        self.position = 0

    def read_exactly(self, size: int) -> bytes:
        data = self.stream.read(size)
        if len(data) != size:
            raise InvalidBeatmapFile("Unexpected end of file")
        self.position += size
        return data

    def parse(self, construct: c.Construct, size: int) -> Any:
        return construct.parse(self.read_exactly(size))

    def read(self) -> Beatmap:
        if self.read_exactly(len(SIGNATURE)) != SIGNATURE:
            raise InvalidBeatmapFile("Invalid LS2OVR header")

        format_ = self.parse(format_field, 4)
        if not format_.eight_bit_safe:
            raise InvalidBeatmapFile("File is not 8-bit safe, the high bit was lost")
        if format_.version > TARGET_VERSION:
            raise UnsupportedFeature(
                f"LS2OVR format version {format_.version} is not supported "
                f"(latest supported is {TARGET_VERSION})"
            )

        if self.read_exactly(len(TRANSMISSION_CHECK)) != TRANSMISSION_CHECK:
            raise InvalidBeatmapFile(
                "Transmission check failed, the file was probably altered by a "
                "text mode transfer"
            )

        metadata_bytes, intact = self.read_checksummed_blob("metadata")
        if not intact:
            raise InvalidBeatmapFile("MD5 mismatch in metadata")
        try:
            metadata = schema.load_metadata(nbt.parse_document(metadata_bytes))
        except nbt.NbtFormatError as e:
            raise InvalidBeatmapFile(f"Invalid metadata : {e}") from e

        beatmaps = load_beatmap_records(self.read_payload())

        file_list_size = self.parse(size_field, 4)
        if file_list_size <= 0:
            raise InvalidBeatmapFile(f"Invalid file list size : {file_list_size}")
        try:
            file_list_root = nbt.parse_document(self.read_exactly(file_list_size))
            file_entries = schema.load_file_list(file_list_root)
        except nbt.NbtFormatError as e:
            raise InvalidBeatmapFile(f"Invalid file list : {e}") from e

        if self.read_exactly(len(EOF_MARKER)) != EOF_MARKER:
            raise InvalidBeatmapFile("Invalid EOF marker")

        return Beatmap(
            metadata=metadata,
            beatmaps=beatmaps,
            files=self.read_files(file_entries),
            format_version=format_.version,
        )

    def read_checksummed_blob(self, what: str) -> Tuple[bytes, bool]:
        size = self.parse(size_field, 4)
        if size <= 0:
            raise InvalidBeatmapFile(f"Invalid {what} size : {size}")
        data = self.read_exactly(size)
        checksum = self.read_exactly(md5_field.sizeof())
        return data, md5(data) == checksum

    def read_payload(self) -> bytes:
        header = self.parse(compression_header, compression_header.sizeof())
        try:
            compression = Compression(header.compression)
        except ValueError:
            raise InvalidBeatmapFile(f"Unknown compression : {header.compression}")

        if compression in RESERVED_COMPRESSIONS:
            raise UnsupportedFeature(f"Unsupported compression : {compression.name}")
        if header.compressed_size <= 0 or header.uncompressed_size <= 0:
            raise InvalidBeatmapFile("Invalid beatmap data size")
        if (
            compression == Compression.NONE
            and header.compressed_size != header.uncompressed_size
        ):
            raise InvalidBeatmapFile(
                "Compressed and uncompressed sizes differ in uncompressed data"
            )

        payload = decompress(compression, self.read_exactly(header.compressed_size))
        if len(payload) != header.uncompressed_size:
            raise InvalidBeatmapFile(
                f"Beatmap data is {len(payload)} bytes long once decompressed, "
                f"expected {header.uncompressed_size}"
            )

        return payload

    def skip(self, size: int) -> bool:
        """Move forward without reading the data if the stream allows it"""
        seekable = getattr(self.stream, "seekable", lambda: False)
        if seekable():
            self.stream.seek(size, io.SEEK_CUR)
        elif len(self.stream.read(size)) != size:
            return False

        self.position += size
        return True

    def read_files(self, entries: List[schema.FileEntry]) -> Dict[str, bytes]:
        files: Dict[str, bytes] = {}
        for entry in sorted(entries, key=lambda e: e.offset):
            if entry.offset % FILE_ALIGNMENT != 0:
                warnings.warn(f"Skipping misaligned file {entry.filename!r}")
                continue

            gap = entry.offset - self.position
            if gap < 0:
                warnings.warn(
                    f"File {entry.filename!r} overlaps the previous data, "
                    "stopping file extraction"
                )
                break

            if not self.skip(gap):
                warnings.warn("Unexpected end of file, stopping file extraction")
                break

            data = self.stream.read(entry.size)
            if len(data) != entry.size:
                warnings.warn(
                    f"File {entry.filename!r} is truncated, stopping file extraction"
                )
                break

            self.position += entry.size
            if entry.filename in files:
                warnings.warn(f"Duplicate file {entry.filename!r}, keeping the first")
                continue

            files[entry.filename] = data

        return files


def decompress(compression: Compression, data: bytes) -> bytes:
    try:
        if compression == Compression.GZIP:
            return gzip.decompress(data)
        elif compression == Compression.ZLIB:
            return zlib.decompress(data)
    except (OSError, EOFError, zlib.error) as e:
        raise InvalidBeatmapFile(f"Invalid {compression.name} beatmap data : {e}")

    return data


def load_beatmap_records(payload: bytes) -> List[BeatmapData]:
    stream = io.BytesIO(payload)
    count = c.Int8ub.parse_stream(stream)
    res = []
    for i in range(count):
        size = size_field.parse_stream(stream)
        if size <= 0:
            raise InvalidBeatmapFile(f"Invalid size for beatmap record {i} : {size}")
        data = c.Bytes(size).parse_stream(stream)
        checksum = md5_field.parse_stream(stream)
        if md5(data) != checksum:
            warnings.warn(f"MD5 mismatch in beatmap record {i}, skipping it")
            continue

        try:
            res.append(schema.load_beatmap_data(nbt.parse_document(data)))
        except ValueError as e:
            warnings.warn(f"Skipping invalid beatmap record {i} : {e}")

    return res
