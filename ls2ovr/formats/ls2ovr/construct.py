"""The LS2OVR container framing described using construct.
see https://construct.readthedocs.io/en/latest/index.html

All integers are big endian"""

import dataclasses
import hashlib
from enum import Enum

import construct as c
import construct_typed as ct

SIGNATURE = b"livesim3"
# Catches files that went through a text-mode transfer
TRANSMISSION_CHECK = b"\x1a\x0a\x0d\x0a"
EOF_MARKER = b"overrnbw"
# Latest format version this library understands
TARGET_VERSION = 0
FILE_ALIGNMENT = 16
MAX_BEATMAPS = 255


class Compression(int, Enum):
    NONE = 0
    GZIP = 1
    ZLIB = 2
    # Reserved, not implemented
    LZ4 = 3
    ZSTD = 4
    BROTLI = 5


RESERVED_COMPRESSIONS = {Compression.LZ4, Compression.ZSTD, Compression.BROTLI}


@dataclasses.dataclass
class FormatField(ct.DataclassMixin):
    # The high bit is always set, a cleared high bit means something along
    # the way stripped the 8th bit of every byte
    eight_bit_safe: bool = ct.csfield(c.Flag)
    version: int = ct.csfield(c.BitsInteger(31))


format_field = ct.DataclassBitStruct(FormatField)

size_field = c.Int32sb
md5_field = c.Bytes(16)


def md5(data: bytes) -> bytes:
    return hashlib.md5(data).digest()


checksummed_blob = c.Struct(
    "size" / c.Rebuild(size_field, c.len_(c.this.data)),
    "data" / c.Bytes(c.this.size),
    "md5" / c.Checksum(md5_field, md5, c.this.data),
)

beatmap_records = c.Struct(
    "count" / c.Rebuild(c.Int8ub, c.len_(c.this.records)),
    "records" / c.Array(c.this.count, checksummed_blob),
)

compression_header = c.Struct(
    "compression" / c.Int8ub,
    "compressed_size" / size_field,
    "uncompressed_size" / size_field,
)

container = c.Struct(
    "signature" / c.Const(SIGNATURE),
    "format" / format_field,
    "transmission_check" / c.Const(TRANSMISSION_CHECK),
    "metadata" / checksummed_blob,
    "compression" / c.Int8ub,
    "compressed_size" / c.Rebuild(size_field, c.len_(c.this.payload)),
    "uncompressed_size" / size_field,
    "payload" / c.Bytes(c.this.compressed_size),
    "file_list" / c.Prefixed(size_field, c.GreedyBytes),
    "eof_marker" / c.Const(EOF_MARKER),
)
