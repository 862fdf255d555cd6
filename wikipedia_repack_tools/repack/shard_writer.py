"""
shard_writer.py - Write Repacked Records into Container Shards
==============================================================

Each shard is a pair of files in the output directory:

1. Data file (part-NNNNN.docs)
   - Units appended back to back in arrival order
   - none:   one framed record per unit, uncompressed
   - record: one gzip member per framed record
   - block:  one gzip member per block of framed records

2. Index file (part-NNNNN.idx)
   - Header:  #compression<TAB><type><TAB><codec><TAB><block_size>
   - Entries: <first_docno><TAB><offset><TAB><length><TAB><record_count>
   - One entry per unit; offset/length address the unit inside the data file,
     so a unit can be read with a single seek + decompress

The index file is only written when the shard is closed successfully. A data
file without its index is an incomplete shard (cancelled or failed run) and is
refused by the container reader.
"""

import os
import shutil
from typing import List, NamedTuple, Optional

from .compression import (
    COMPRESSION_BLOCK,
    COMPRESSION_NONE,
    DEFAULT_BLOCK_SIZE,
    BlockAccumulator,
    GzipCodec,
    frame_record,
    validate_compression_type,
)
from .record_filter import OutputRecord

DATA_SUFFIX = ".docs"
IDX_SUFFIX = ".idx"


class IdxEntry(NamedTuple):
    first_docno: int
    offset: int
    length: int
    record_count: int


def get_shard_name(shard_num: int) -> str:
    return f"part-{shard_num:05d}"


def idx_path_for(data_path: str) -> str:
    if data_path.endswith(DATA_SUFFIX):
        return data_path[: -len(DATA_SUFFIX)] + IDX_SUFFIX
    return data_path + IDX_SUFFIX


def prepare_output_dir(output_dir: str):
    """
    Replace output_dir with an empty directory.

    Any previous contents are deleted: a new run never merges with stale shards.
    """
    if os.path.isdir(output_dir):
        shutil.rmtree(output_dir)
    elif os.path.exists(output_dir):
        os.remove(output_dir)
    os.makedirs(output_dir, exist_ok=True)


class ShardWriter:
    """
    Append-only writer for one container shard.

    Use as a context manager; on a clean exit the trailing block is flushed
    and the index file is written, on an exception only the data handle is
    closed and the exception propagates.
    """

    def __init__(
        self,
        data_path: str,
        compression_type: str,
        block_size: int = DEFAULT_BLOCK_SIZE,
        codec=None,
    ):
        self.data_path = data_path
        self.idx_path = idx_path_for(data_path)
        self.compression_type = validate_compression_type(compression_type)
        self.block_size = block_size
        self.codec = None
        if self.compression_type != COMPRESSION_NONE:
            self.codec = codec if codec is not None else GzipCodec()

        self.records_written = 0
        self.entries: List[IdxEntry] = []
        self.closed = False
        self.finalized = False

        self._accumulator: Optional[BlockAccumulator] = None
        self._block_first_docno = None
        if self.compression_type == COMPRESSION_BLOCK:
            self._accumulator = BlockAccumulator(block_size)

        # Use larger buffer for better I/O performance
        self._fh = open(data_path, "wb", buffering=65536)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.close()
        else:
            self.abort()
        return False

    def _write_unit(self, data: bytes, first_docno: int, record_count: int):
        start_offset = self._fh.tell()
        self._fh.write(data)
        self.entries.append(
            IdxEntry(first_docno, start_offset, self._fh.tell() - start_offset, record_count)
        )

    def _write_block(self, block: List[bytes]):
        self._write_unit(self.codec.compress(b"".join(block)), self._block_first_docno, len(block))
        self._block_first_docno = None

    def write(self, record: OutputRecord):
        """Append one record; order of calls is the order in the shard."""
        if self.closed:
            raise ValueError(f"Shard already closed: {self.data_path}")

        framed = frame_record(record.docno, record.content)
        self.records_written += 1

        if self._accumulator is not None:
            if self._block_first_docno is None:
                self._block_first_docno = record.docno
            block = self._accumulator.add(framed)
            if block is not None:
                self._write_block(block)
        elif self.compression_type == COMPRESSION_NONE:
            self._write_unit(framed, record.docno, 1)
        else:
            self._write_unit(self.codec.compress(framed), record.docno, 1)

    def close(self):
        """Flush the trailing block, close the data file and write the index."""
        if self.closed:
            return

        try:
            if self._accumulator is not None:
                block = self._accumulator.flush()
                if block is not None:
                    self._write_block(block)
        finally:
            self._fh.close()
            self.closed = True

        codec_name = self.codec.name if self.codec is not None else "-"
        tmp_path = self.idx_path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as idxf:
            idxf.write(
                f"#compression\t{self.compression_type}\t{codec_name}\t{self.block_size}\n"
            )
            for entry in self.entries:
                idxf.write(
                    f"{entry.first_docno}\t{entry.offset}\t{entry.length}\t{entry.record_count}\n"
                )
        os.replace(tmp_path, self.idx_path)
        self.finalized = True

    def abort(self):
        """Close the data file without finalizing the shard."""
        if not self.closed:
            self._fh.close()
            self.closed = True


def open_shard(
    output_dir: str,
    shard_num: int,
    compression_type: str,
    block_size: int = DEFAULT_BLOCK_SIZE,
    codec=None,
) -> ShardWriter:
    """Open the writer for shard number shard_num inside output_dir."""
    data_path = os.path.join(output_dir, get_shard_name(shard_num) + DATA_SUFFIX)
    return ShardWriter(data_path, compression_type, block_size=block_size, codec=codec)
