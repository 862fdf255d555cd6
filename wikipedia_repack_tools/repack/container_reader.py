#!/usr/bin/env python3
"""
container_reader.py - Read Repacked Containers Back as (docno, content)
=======================================================================

Reads the shards written by repack-wikipedia. Each shard's .idx file lists the
units of its .docs file; a unit is read with one seek, decoded according to
the compression type recorded in the .idx header, and split into records.

COMMAND-LINE USAGE
==================

After installing: pip install -e .
The command 'container-to-flat' becomes available globally.

    # Dump every record of a finished container to stdout
    container-to-flat -i pages-articles.block

    # Inspect a container from a failed run (no _SUCCESS marker)
    container-to-flat -i pages-articles.block --allow-incomplete

OUTPUT
======

One line per record, in container order:

    <docno>\\t<content>

with backslashes, newlines, carriage returns and tabs in the content escaped
as \\\\, \\n, \\r and \\t.
"""

import glob
import json
import os
import sys
from argparse import ArgumentParser
from typing import Dict, Iterator, List, Optional, Tuple

from .compression import (
    COMPRESSION_NONE,
    COMPRESSION_TYPES,
    get_codec,
    parse_framed_records,
)
from .record_filter import OutputRecord
from .shard_writer import DATA_SUFFIX, IdxEntry, idx_path_for

SUCCESS_MARKER = "_SUCCESS"


class IncompleteContainerError(Exception):
    """Raised when a container or shard was not finalized."""


def read_idx_file(idx_path: str) -> Tuple[Dict[str, object], List[IdxEntry]]:
    """
    Read a shard .idx file.

    Returns:
        (header, entries) where header holds compression_type, codec and block_size
    """
    header: Dict[str, object] = {}
    entries = []

    with open(idx_path, "r", encoding="utf-8") as fh:
        for line_num, line in enumerate(fh, 1):
            line = line.rstrip("\r\n")
            if not line:
                continue

            parts = line.split("\t")
            if line.startswith("#"):
                if parts[0] == "#compression" and len(parts) >= 4:
                    header = {
                        "compression_type": parts[1],
                        "codec": parts[2],
                        "block_size": int(parts[3]),
                    }
                continue

            if len(parts) != 4:
                raise ValueError(f"Malformed index line {line_num} in {idx_path}: {line[:60]!r}")
            try:
                entries.append(IdxEntry(*(int(p) for p in parts)))
            except ValueError:
                raise ValueError(
                    f"Invalid number in index line {line_num} in {idx_path}: {line[:60]!r}"
                ) from None

    if header.get("compression_type") not in COMPRESSION_TYPES:
        raise ValueError(f"Missing or invalid compression header in {idx_path}")

    return header, entries


def read_container_metadata(output_dir: str) -> Optional[dict]:
    """Return the parsed _SUCCESS marker, or None if the container is not finalized."""
    marker = os.path.join(output_dir, SUCCESS_MARKER)
    if not os.path.exists(marker):
        return None
    with open(marker, "r", encoding="utf-8") as fh:
        return json.load(fh)


class ShardReader:
    """Random access to the units of one finalized shard."""

    def __init__(self, data_path: str):
        self.data_path = data_path
        idx_path = idx_path_for(data_path)
        if not os.path.exists(idx_path):
            raise IncompleteContainerError(f"Shard was not finalized (no index): {data_path}")

        self.header, self.entries = read_idx_file(idx_path)
        self.compression_type = self.header["compression_type"]
        self.codec = None
        if self.compression_type != COMPRESSION_NONE:
            self.codec = get_codec(self.header["codec"])

    def _read_unit(self, fh, entry: IdxEntry) -> List[OutputRecord]:
        fh.seek(entry.offset)
        data = fh.read(entry.length)
        if self.codec is not None:
            data = self.codec.decompress(data)
        return [OutputRecord(docno, content) for docno, content in parse_framed_records(data)]

    def read_unit(self, entry: IdxEntry) -> List[OutputRecord]:
        """Seek to one unit, decode its compression envelope and split its records."""
        with open(self.data_path, "rb") as fh:
            return self._read_unit(fh, entry)

    def iter_records(self) -> Iterator[OutputRecord]:
        with open(self.data_path, "rb") as fh:
            for entry in self.entries:
                yield from self._read_unit(fh, entry)


def get_shard_paths(output_dir: str) -> List[str]:
    return sorted(glob.glob(os.path.join(output_dir, f"part-*{DATA_SUFFIX}")))


def iter_container(output_dir: str, require_success: bool = True) -> Iterator[OutputRecord]:
    """
    Yield every record of a container, shard by shard, in shard order.

    With require_success False, shards without an index are skipped with a
    warning instead of failing.

    Raises:
        IncompleteContainerError: If the container has no _SUCCESS marker or a
            shard has no index (only when require_success is True)
    """
    if require_success and read_container_metadata(output_dir) is None:
        raise IncompleteContainerError(
            f"Container was not finalized (no {SUCCESS_MARKER}): {output_dir}"
        )

    for data_path in get_shard_paths(output_dir):
        if not require_success and not os.path.exists(idx_path_for(data_path)):
            print(f"Warning: Skipping incomplete shard: {data_path}", file=sys.stderr)
            continue
        yield from ShardReader(data_path).iter_records()


def escape_content(content: bytes) -> str:
    text = content.decode("utf-8", errors="replace")
    return (
        text.replace("\\", "\\\\").replace("\n", "\\n").replace("\r", "\\r").replace("\t", "\\t")
    )


def container_to_flat(output_dir: str, allow_incomplete: bool = False, out=None) -> int:
    """Write docno<TAB>content lines for a whole container. Returns records written."""
    out = out if out is not None else sys.stdout
    count = 0
    for record in iter_container(output_dir, require_success=not allow_incomplete):
        out.write(f"{record.docno}\t{escape_content(record.content)}\n")
        count += 1
    out.flush()
    return count


def parse_args(argv=None):
    p = ArgumentParser(description="Dump a repacked Wikipedia container as docno/content lines.")
    p.add_argument("-i", "--input", required=True, help="Container (output) directory")
    p.add_argument(
        "--allow-incomplete",
        action="store_true",
        help="Read finalized shards even if the container has no _SUCCESS marker",
    )
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    try:
        container_to_flat(args.input, allow_incomplete=args.allow_incomplete)
    except KeyboardInterrupt:
        print("\n# Interrupted by user", file=sys.stderr)
        sys.exit(130)
    except (IncompleteContainerError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
