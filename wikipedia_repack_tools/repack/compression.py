"""
compression.py - Compression Policy for Repacked Wikipedia Containers
=====================================================================

Three compression types are supported, selected once per run:

    none    Each record is written as-is (framed, uncompressed).
    record  Each record is compressed independently (one gzip member per record).
    block   Consecutive records are accumulated until the running uncompressed
            size reaches the block size (default 1,000,000 bytes), then the whole
            block is compressed as one gzip member.

RECORD FRAMING
==============

Every record is framed before compression:

    <docno>\\t<length>\\n<content bytes>\\n

The framed size is the "uncompressed size" counted toward block boundaries, so
block membership depends only on the sequence of framed record sizes and the
block size, never on the codec.

CODECS
======

The codec is independent of the boundary logic. GzipCodec (the default) writes
plain gzip members, so every compressed unit can be read with a seek and
gzip.decompress. Additional codecs can be registered in CODECS.
"""

import gzip
from typing import List, Optional, Tuple

COMPRESSION_BLOCK = "block"
COMPRESSION_RECORD = "record"
COMPRESSION_NONE = "none"

COMPRESSION_TYPES = (COMPRESSION_BLOCK, COMPRESSION_RECORD, COMPRESSION_NONE)

# this is the default block size
DEFAULT_BLOCK_SIZE = 1000000


class ConfigurationError(ValueError):
    """Raised for invalid job options, before any I/O takes place."""


def validate_compression_type(compression_type: str) -> str:
    """
    Check that compression_type is one of block, record or none.

    Raises:
        ConfigurationError: For any other value (e.g. "gzip")
    """
    if compression_type not in COMPRESSION_TYPES:
        raise ConfigurationError(f'"{compression_type}" unknown compression type!')
    return compression_type


class GzipCodec:
    """Gzip codec; each compressed unit is one self-contained gzip member."""

    name = "gzip"

    def __init__(self, compress_level: int = 6):
        if not 1 <= compress_level <= 9:
            raise ConfigurationError(f"Invalid gzip compress level: {compress_level}")
        self.compress_level = compress_level

    def compress(self, data: bytes) -> bytes:
        # mtime=0 keeps output byte-for-byte reproducible across runs
        return gzip.compress(data, compresslevel=self.compress_level, mtime=0)

    def decompress(self, data: bytes) -> bytes:
        return gzip.decompress(data)


CODECS = {
    GzipCodec.name: GzipCodec,
}


def get_codec(name: str, compress_level: int = 6):
    """Return a codec instance by name."""
    try:
        codec_class = CODECS[name]
    except KeyError:
        raise ConfigurationError(f'"{name}" unknown codec!') from None
    return codec_class(compress_level=compress_level)


def frame_record(docno: int, content: bytes) -> bytes:
    """Frame a single (docno, content) pair."""
    return b"%d\t%d\n" % (docno, len(content)) + content + b"\n"


def parse_framed_records(data: bytes) -> List[Tuple[int, bytes]]:
    """
    Split uncompressed framed data back into (docno, content) pairs.

    Raises:
        ValueError: If the framing is truncated or malformed
    """
    records = []
    pos = 0
    end = len(data)

    while pos < end:
        header_end = data.find(b"\n", pos)
        if header_end == -1:
            raise ValueError(f"Truncated record header at offset {pos}")

        docno_str, _, length_str = data[pos:header_end].partition(b"\t")
        docno = int(docno_str)
        length = int(length_str)

        content_start = header_end + 1
        content_end = content_start + length
        if content_end + 1 > end or data[content_end:content_end + 1] != b"\n":
            raise ValueError(f"Truncated record content for docno {docno}")

        records.append((docno, data[content_start:content_end]))
        pos = content_end + 1

    return records


class BlockAccumulator:
    """
    Groups framed records into blocks by cumulative uncompressed size.

    A block is sealed as soon as the running size reaches the threshold
    (after adding the record that crossed it), so the last record of a block
    may take the block past the threshold.
    """

    def __init__(self, threshold: int = DEFAULT_BLOCK_SIZE):
        if threshold < 1:
            raise ConfigurationError(f"Invalid block size: {threshold}")
        self.threshold = threshold
        self._pending: List[bytes] = []
        self._pending_size = 0

    @property
    def pending_size(self) -> int:
        return self._pending_size

    def __len__(self):
        return len(self._pending)

    def add(self, framed: bytes) -> Optional[List[bytes]]:
        """Add one framed record; return the sealed block if the threshold was reached."""
        self._pending.append(framed)
        self._pending_size += len(framed)
        if self._pending_size >= self.threshold:
            return self.flush()
        return None

    def flush(self) -> Optional[List[bytes]]:
        """Return the partially filled block (if any) and reset."""
        if not self._pending:
            return None
        block = self._pending
        self._pending = []
        self._pending_size = 0
        return block
