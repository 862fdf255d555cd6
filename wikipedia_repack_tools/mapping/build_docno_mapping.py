#!/usr/bin/env python3
"""
build_docno_mapping.py - Build a Docno Mapping File from a Wikipedia Dump
=========================================================================

Scans one or more MediaWiki XML dumps and writes the ids of article pages,
one per line, in dump order. The line number (0-based) of each id is its
docno. The resulting file is the mapping consumed by repack-wikipedia.

Pages kept:
    - namespace 0 (articles)
    - not redirects
    - not disambiguation pages (per-language templates, see --language)
    - non-empty wikitext
    - with an id, first occurrence only

Everything else is skipped; repack-wikipedia later drops exactly those pages.

COMMAND-LINE USAGE
==================

    # English dump
    build-docno-mapping -i enwiki-pages-articles.xml.bz2 -o docno.dat -l en

    # Directory of dump parts, prebuilt index output
    build-docno-mapping -i /data/dewiki/parts/ -o docno.idx.gz -l de --index

    # Verbose statistics
    build-docno-mapping -i pages-articles.xml -o docno.dat -v
"""

import argparse
import gzip
import sys
from typing import List, Optional, Tuple

from ..dump.wikipedia_dump import (
    DocumentRecord,
    is_disambiguation,
    read_documents,
    validate_language,
)
from ..file_discovery import get_input_files, log_progress
from .docno_mapping import DocnoMapping, MappingLoadError


def is_mappable(record: DocumentRecord, language: Optional[str] = None) -> bool:
    """True for article pages that get a docno."""
    if not record.identifier:
        return False
    if record.namespace != 0 or record.is_redirect:
        return False
    if not record.text.strip():
        return False
    return not is_disambiguation(record.text, language)


def build_docno_mapping(
    input_paths: List[str],
    output_path: str,
    language: Optional[str] = None,
    write_index: bool = False,
    verbose: bool = False,
) -> Tuple[int, int]:
    """
    Build a docno mapping file from dump files.

    Args:
        input_paths: Dump files or directories
        output_path: Mapping file to write (.gz for compressed output)
        language: Two-letter language code selecting disambiguation templates
        write_index: Write a prebuilt docno index instead of an identifier list
        verbose: Print progress information

    Returns:
        Tuple of (pages_kept, pages_skipped)
    """
    validate_language(language)
    input_files = get_input_files(input_paths)

    identifiers = []
    seen_ids = set()
    skipped = 0

    for input_path in input_files:
        log_progress(f"# Scanning {input_path}", verbose)
        for record in read_documents(input_path):
            if not is_mappable(record, language) or record.identifier in seen_ids:
                skipped += 1
                continue
            seen_ids.add(record.identifier)
            identifiers.append(record.identifier)

            if verbose and len(identifiers) % 100000 == 0:
                log_progress(f"# Mapped {len(identifiers)} pages...", verbose)

    mapping = DocnoMapping.from_identifiers(identifiers)
    if write_index:
        mapping.write_docno_index(output_path)
    else:
        opener = gzip.open if output_path.endswith(".gz") else open
        with opener(output_path, "wt", encoding="utf-8") as out:
            for identifier in identifiers:
                out.write(identifier + "\n")
    return len(identifiers), skipped


def main(argv=None):
    """Command-line interface."""
    parser = argparse.ArgumentParser(
        description="Build a docno mapping file (article page ids) from Wikipedia XML dumps",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s -i enwiki-pages-articles.xml.bz2 -o docno.dat -l en
  %(prog)s -i /data/parts/ -o docno.idx.gz --index
        """,
    )
    parser.add_argument(
        "-i",
        "--input",
        action="append",
        dest="inputs",
        required=True,
        help="XML dump file or directory (can specify multiple times)",
    )
    parser.add_argument("-o", "--output", required=True, help="Output mapping file")
    parser.add_argument("-l", "--language", default=None, help="Two-letter language code")
    parser.add_argument(
        "--index",
        action="store_true",
        help="Write a prebuilt docno index (sorted identifier<TAB>docno) instead of a list",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Print statistics to stderr")

    args = parser.parse_args(argv)

    try:
        kept, skipped = build_docno_mapping(
            args.inputs,
            args.output,
            language=args.language,
            write_index=args.index,
            verbose=args.verbose,
        )
        print(f"# Kept {kept} pages, skipped {skipped} pages", file=sys.stderr)
    except KeyboardInterrupt:
        print("\n# Interrupted by user", file=sys.stderr)
        sys.exit(130)
    except (ValueError, MappingLoadError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
