#!/usr/bin/env python3
"""
repack_wikipedia.py - Repack Wikipedia XML Dumps into Docno-Keyed Containers
============================================================================

Reads MediaWiki XML dumps, drops every page that is not in a precomputed docno
mapping, rekeys the remaining pages by their dense integer docno and writes
them into a sharded container, uncompressed, record-compressed or
block-compressed.

COMMAND-LINE USAGE
==================

After installing: pip install -e .
The command 'repack-wikipedia' becomes available globally.

Basic Examples:

    # Block compression (default 1,000,000 byte blocks)
    repack-wikipedia -i enwiki-pages-articles.xml.bz2 \\
        -m docno.dat -o pages-articles.block -c block -l en

    # Record compression, one shard per dump part
    repack-wikipedia -i /data/enwiki/parts/ -m docno.dat -o pages-articles.record -c record

    # No compression
    repack-wikipedia -i pages-articles.xml -m docno.dat -o pages-articles.none -c none

Advanced Examples:

    # Smaller blocks, more workers, verbose progress
    repack-wikipedia -i /data/parts/ -m docno.dat -o out -c block \\
        --block-size 250000 --workers 8 -v

PARAMETERS
==========

Required:
    -i, --input PATH          Dump file or directory of dump parts (repeatable)
    -o, --output DIR          Output container directory (REPLACED if it exists)
    -m, --mapping-file FILE   Docno mapping (identifier list or prebuilt index)
    -c, --compression-type T  block | record | none

Optional:
    -l, --language XX         Two-letter wiki language code (recorded in _SUCCESS)
    --block-size N            Uncompressed bytes per block (default: 1000000)
    --compress-level N        Gzip level 1-9 (default: 6)
    --workers N               Parallel shard workers (default: 4)
    -v, --verbose             Progress information on stderr

OUTPUT
======

    <output>/part-00000.docs   shard data
    <output>/part-00000.idx    shard unit index (written when the shard finishes)
    ...
    <output>/_SUCCESS          JSON summary, written only if every shard succeeded

NOTES
=====

- One shard per input file; shards are processed in parallel and never share
  state except the read-only docno mapping.
- Pages without an id or not in the mapping are dropped silently. Only the
  seen/emitted counters reflect them.
- Invalid options and mapping load errors abort before the output directory is
  touched.
- The previous contents of the output directory are deleted before the run.
"""

import json
import os
import sys
import threading
import time
from argparse import ArgumentParser
from concurrent.futures import CancelledError, ThreadPoolExecutor, as_completed
from typing import Iterator, List, NamedTuple, Optional

from ..dump.wikipedia_dump import DocumentRecord, read_documents, validate_language
from ..file_discovery import get_input_files, log_progress
from ..mapping.docno_mapping import DocnoMapping, MappingLoadError, load_docno_mapping
from .compression import (
    COMPRESSION_BLOCK,
    COMPRESSION_NONE,
    DEFAULT_BLOCK_SIZE,
    ConfigurationError,
    get_codec,
    validate_compression_type,
)
from .container_reader import SUCCESS_MARKER
from .record_filter import RecordFilter, filter_records
from .shard_writer import DATA_SUFFIX, ShardWriter, get_shard_name, prepare_output_dir


class ShardCancelled(Exception):
    """Raised inside a shard worker when the job was aborted by another shard."""


class ShardResult(NamedTuple):
    shard_name: str
    input_path: str
    seen: int
    emitted: int


class RepackResult(NamedTuple):
    success: bool
    seen: int
    emitted: int
    shards: List[ShardResult]


def validate_options(
    input_paths: Optional[List[str]],
    output_dir: Optional[str],
    mapping_file: Optional[str],
    compression_type: Optional[str],
    language: Optional[str] = None,
    block_size: int = DEFAULT_BLOCK_SIZE,
    compress_level: int = 6,
    workers: int = 4,
):
    """
    Validate job options. Performs no I/O.

    Raises:
        ConfigurationError: On the first invalid option
    """
    if not input_paths:
        raise ConfigurationError("Missing input path")
    if not output_dir:
        raise ConfigurationError("Missing output path")
    if not mapping_file:
        raise ConfigurationError("Missing mapping file")
    if not compression_type:
        raise ConfigurationError("Missing compression type")

    validate_compression_type(compression_type)

    try:
        validate_language(language)
    except ValueError as e:
        raise ConfigurationError(str(e)) from None

    if block_size < 1:
        raise ConfigurationError(f"Invalid block size: {block_size}")
    if not 1 <= compress_level <= 9:
        raise ConfigurationError(f"Invalid compress level: {compress_level}")
    if workers < 1:
        raise ConfigurationError(f"Invalid number of workers: {workers}")


def check_cancelled(
    records: Iterator[DocumentRecord], cancel_event: Optional[threading.Event], shard_name: str
) -> Iterator[DocumentRecord]:
    """Pass input records through, raising ShardCancelled once the job is aborted."""
    for record in records:
        if cancel_event is not None and cancel_event.is_set():
            raise ShardCancelled(f"{shard_name} cancelled")
        yield record


def repack_shard(
    input_path: str,
    mapping: DocnoMapping,
    data_path: str,
    compression_type: str,
    block_size: int = DEFAULT_BLOCK_SIZE,
    codec=None,
    cancel_event: Optional[threading.Event] = None,
    verbose: bool = False,
) -> ShardResult:
    """
    Filter/rekey one input partition and write it into one shard.

    Raises:
        OSError: On read or write failures (the shard is left without an index)
        ShardCancelled: If cancel_event was set while the shard was running
    """
    shard_name = os.path.basename(data_path)[: -len(DATA_SUFFIX)]
    log_progress(f"[SHARD] {shard_name}: {input_path}", verbose)

    record_filter = RecordFilter(mapping)
    with ShardWriter(data_path, compression_type, block_size=block_size, codec=codec) as writer:
        documents = check_cancelled(read_documents(input_path), cancel_event, shard_name)
        for record in filter_records(documents, record_filter):
            writer.write(record)

    log_progress(
        f"[SHARD] {shard_name}: {record_filter.seen} seen, {record_filter.emitted} emitted, "
        f"{len(writer.entries)} units",
        verbose,
    )
    return ShardResult(shard_name, input_path, record_filter.seen, record_filter.emitted)


def write_success_marker(output_dir: str, metadata: dict):
    tmp_path = os.path.join(output_dir, SUCCESS_MARKER + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as fh:
        json.dump(metadata, fh, indent=2, sort_keys=True)
        fh.write("\n")
    os.replace(tmp_path, os.path.join(output_dir, SUCCESS_MARKER))


def repack_wikipedia(
    input_paths: List[str],
    output_dir: str,
    mapping_file: str,
    compression_type: str,
    language: Optional[str] = None,
    block_size: int = DEFAULT_BLOCK_SIZE,
    compress_level: int = 6,
    workers: int = 4,
    verbose: bool = False,
) -> RepackResult:
    """
    Run the whole repack job.

    Steps:
    - validate options (no I/O)
    - resolve the input files, one shard per file
    - load the docno mapping once; every shard shares it
    - delete and recreate the output directory
    - run the shards in parallel; the first failure cancels the rest
    - write _SUCCESS only if every shard finished

    Returns:
        RepackResult with overall success and summed seen/emitted counters

    Raises:
        ConfigurationError: Invalid options (nothing is written)
        MappingLoadError: Mapping missing or malformed (nothing is written)
    """
    validate_options(
        input_paths,
        output_dir,
        mapping_file,
        compression_type,
        language=language,
        block_size=block_size,
        compress_level=compress_level,
        workers=workers,
    )
    codec = None if compression_type == COMPRESSION_NONE else get_codec("gzip", compress_level)
    input_files = get_input_files(input_paths)

    log_progress("# Tool name: repack-wikipedia", verbose)
    log_progress(f" - XML dump file(s): {', '.join(input_files)}", verbose)
    log_progress(f" - output path: {output_dir}", verbose)
    log_progress(f" - docno mapping data file: {mapping_file}", verbose)
    log_progress(f" - compression type: {compression_type}", verbose)
    log_progress(f" - language: {language}", verbose)
    if compression_type == COMPRESSION_BLOCK:
        log_progress(f" - block size: {block_size}", verbose)

    log_progress(f"# Loading docno mapping: {mapping_file}", verbose)
    mapping = load_docno_mapping(mapping_file)
    log_progress(f"# Loaded {len(mapping)} docno mappings", verbose)

    # Delete the output directory if it exists already.
    prepare_output_dir(output_dir)

    start_time = time.time()
    cancel_event = threading.Event()
    results: List[ShardResult] = []
    failed = False

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {}
        for shard_num, input_path in enumerate(input_files):
            data_path = os.path.join(output_dir, get_shard_name(shard_num) + DATA_SUFFIX)
            future = executor.submit(
                repack_shard,
                input_path,
                mapping,
                data_path,
                compression_type,
                block_size=block_size,
                codec=codec,
                cancel_event=cancel_event,
                verbose=verbose,
            )
            futures[future] = input_path

        for future in as_completed(futures):
            try:
                results.append(future.result())
            except (ShardCancelled, CancelledError):
                continue
            except Exception as e:  # pylint: disable=broad-except
                print(f"Error: shard for {futures[future]} failed: {e}", file=sys.stderr)
                if not failed:
                    failed = True
                    cancel_event.set()
                    for other in futures:
                        other.cancel()

    results.sort(key=lambda r: r.shard_name)
    total_seen = sum(r.seen for r in results)
    total_emitted = sum(r.emitted for r in results)

    if not failed:
        write_success_marker(
            output_dir,
            {
                "compression_type": compression_type,
                "codec": codec.name if codec is not None else None,
                "block_size": block_size if compression_type == COMPRESSION_BLOCK else None,
                "language": language,
                "mapping_file": mapping_file,
                "shards": [
                    {
                        "name": r.shard_name,
                        "input": r.input_path,
                        "records_seen": r.seen,
                        "records_emitted": r.emitted,
                    }
                    for r in results
                ],
                "records_seen": total_seen,
                "records_emitted": total_emitted,
            },
        )

    elapsed = time.time() - start_time
    log_progress(
        f"# Repack {'FAILED' if failed else 'complete'}: {len(results)}/{len(input_files)} "
        f"shards in {elapsed:.1f} seconds",
        verbose,
    )

    return RepackResult(not failed, total_seen, total_emitted, results)


def parse_args(argv=None):
    p = ArgumentParser(
        description="Repack Wikipedia XML dumps into docno-keyed, optionally compressed containers."
    )
    p.add_argument(
        "-i",
        "--input",
        action="append",
        dest="inputs",
        required=True,
        help="XML dump file or directory of dump parts (can specify multiple times)",
    )
    p.add_argument(
        "-o", "--output", required=True, help="Output location (existing contents are deleted)"
    )
    p.add_argument("-m", "--mapping-file", required=True, help="Docno mapping file")
    p.add_argument(
        "-c",
        "--compression-type",
        required=True,
        metavar="block|record|none",
        help="Compression type",
    )
    p.add_argument(
        "-l", "--language", default=None, metavar="en|sv|de", help="Two-letter language code"
    )
    p.add_argument(
        "--block-size",
        type=int,
        default=DEFAULT_BLOCK_SIZE,
        help=f"Uncompressed bytes per block in block mode (default: {DEFAULT_BLOCK_SIZE})",
    )
    p.add_argument(
        "--compress-level",
        type=int,
        default=6,
        help="Gzip compression level 1-9 (default: 6)",
    )
    p.add_argument(
        "--workers", type=int, default=4, help="Number of parallel shard workers (default: 4)"
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Print progress to stderr")
    return p.parse_args(argv)


def main(argv=None):
    """
    Main entry point for command-line execution.
    Exits 0 when every shard succeeded, 1 otherwise.
    """
    args = parse_args(argv)

    try:
        result = repack_wikipedia(
            args.inputs,
            args.output,
            args.mapping_file,
            args.compression_type,
            language=args.language,
            block_size=args.block_size,
            compress_level=args.compress_level,
            workers=args.workers,
            verbose=args.verbose,
        )
    except KeyboardInterrupt:
        print("\n# Interrupted by user", file=sys.stderr)
        sys.exit(130)
    except (ConfigurationError, MappingLoadError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"# Total records seen: {result.seen}", file=sys.stderr)
    print(f"# Total records emitted: {result.emitted}", file=sys.stderr)

    if not result.success:
        sys.exit(1)


if __name__ == "__main__":
    main()
