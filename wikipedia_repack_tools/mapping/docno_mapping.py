#!/usr/bin/env python3
"""
docno_mapping.py - Immutable Identifier to Docno Mapping
=========================================================

Maps external document identifiers (Wikipedia page ids) to dense integer
docnos. The mapping is built once from a side file and never changes
afterwards, so a single instance can be shared by every repack worker thread
without locking.

MAPPING FILE FORMATS
====================

1. Identifier list (plain text or .gz)
   - One identifier per line, position in the file is the docno (0-based)
   - Example:
        12
        25
        39
     maps 12 -> 0, 25 -> 1, 39 -> 2

2. Prebuilt docno index (written by DocnoMapping.write_docno_index)
   - First line: #docno-index<TAB>1
   - Then <identifier><TAB><docno> lines sorted by identifier
   - Loads without re-sorting, which matters for mappings with tens of
     millions of entries

Lookups use binary search over the sorted identifier array with a parallel
docno array. Identifiers not in the mapping return NOT_FOUND (-1).

PYTHON API
==========

    from wikipedia_repack_tools.mapping.docno_mapping import load_docno_mapping

    mapping = load_docno_mapping('docno.dat')
    docno = mapping.lookup('12')
    if docno != NOT_FOUND:
        ...
"""

import bisect
import gzip
import os
from typing import Iterable, List, Optional, Tuple

NOT_FOUND = -1

DOCNO_INDEX_HEADER = "#docno-index\t1"


class MappingLoadError(Exception):
    """Raised when a docno mapping file is missing or malformed."""


class DocnoMapping:
    """
    Read-only {identifier -> docno} lookup structure.

    Identifiers are kept in a sorted list with a parallel list of docnos;
    there are no methods that modify either after construction.
    """

    __slots__ = ("_ids", "_docnos")

    def __init__(self, sorted_ids: List[str], docnos: List[int]):
        self._ids = sorted_ids
        self._docnos = docnos

    @classmethod
    def from_identifiers(cls, identifiers: Iterable[str]) -> "DocnoMapping":
        """
        Build a mapping assigning docnos 0..N-1 in iteration order.

        Raises:
            MappingLoadError: On empty or duplicate identifiers
        """
        pairs = []
        for docno, identifier in enumerate(identifiers):
            if not identifier or identifier != identifier.strip() or "\t" in identifier:
                raise MappingLoadError(f"Invalid identifier for docno {docno}: {identifier!r}")
            pairs.append((identifier, docno))

        pairs.sort()
        for i in range(1, len(pairs)):
            if pairs[i][0] == pairs[i - 1][0]:
                raise MappingLoadError(
                    f"Duplicate identifier {pairs[i][0]!r} "
                    f"(docnos {pairs[i - 1][1]} and {pairs[i][1]})"
                )

        return cls([p[0] for p in pairs], [p[1] for p in pairs])

    def lookup(self, identifier: Optional[str]) -> int:
        """Return the docno for identifier, or NOT_FOUND."""
        if not identifier:
            return NOT_FOUND
        i = bisect.bisect_left(self._ids, identifier)
        if i < len(self._ids) and self._ids[i] == identifier:
            return self._docnos[i]
        return NOT_FOUND

    def __contains__(self, identifier):
        return self.lookup(identifier) != NOT_FOUND

    def __len__(self):
        return len(self._ids)

    def identifiers(self) -> List[str]:
        """Identifiers in docno order."""
        ordered: List[str] = [""] * len(self._ids)
        for identifier, docno in zip(self._ids, self._docnos):
            ordered[docno] = identifier
        return ordered

    def items(self) -> Iterable[Tuple[str, int]]:
        """(identifier, docno) pairs sorted by identifier."""
        return zip(self._ids, self._docnos)

    def write_docno_index(self, path: str):
        """Serialize as a prebuilt docno index (sorted by identifier)."""
        opener = gzip.open if path.endswith(".gz") else open
        with opener(path, "wt", encoding="utf-8") as fh:
            fh.write(DOCNO_INDEX_HEADER + "\n")
            for identifier, docno in self.items():
                fh.write(f"{identifier}\t{docno}\n")


def open_mapping_file(path: str):
    """Open mapping file for reading (text mode), supports gzip."""
    if path.endswith(".gz"):
        return gzip.open(path, "rt", encoding="utf-8")
    return open(path, "r", encoding="utf-8")


def _read_identifier_list(first_line: str, fh) -> DocnoMapping:
    def lines():
        if first_line:
            yield first_line
        yield from fh

    identifiers = []
    for line_num, line in enumerate(lines(), 1):
        identifier = line.rstrip("\r\n")
        if not identifier.strip():
            raise MappingLoadError(f"Empty identifier at line {line_num}")
        identifiers.append(identifier)
    return DocnoMapping.from_identifiers(identifiers)


def _read_docno_index(fh) -> DocnoMapping:
    ids: List[str] = []
    docnos: List[int] = []
    seen = set()

    for line_num, line in enumerate(fh, 2):
        parts = line.rstrip("\r\n").split("\t")
        if len(parts) != 2 or not parts[0]:
            raise MappingLoadError(f"Malformed docno index line {line_num}: {line[:60]!r}")
        identifier, docno_str = parts
        try:
            docno = int(docno_str)
        except ValueError:
            raise MappingLoadError(f"Invalid docno at line {line_num}: {docno_str!r}") from None

        if ids and identifier <= ids[-1]:
            raise MappingLoadError(
                f"Docno index not sorted or duplicate identifier at line {line_num}: {identifier!r}"
            )
        if docno in seen:
            raise MappingLoadError(f"Duplicate docno {docno} at line {line_num}")
        seen.add(docno)
        ids.append(identifier)
        docnos.append(docno)

    if seen and (min(seen) != 0 or max(seen) != len(seen) - 1):
        raise MappingLoadError("Docnos in docno index are not dense (expected 0..N-1)")

    return DocnoMapping(ids, docnos)


def load_docno_mapping(path: str) -> DocnoMapping:
    """
    Load a docno mapping from an identifier list or a prebuilt docno index.

    Args:
        path: Path to mapping file (plain or .gz)

    Returns:
        DocnoMapping

    Raises:
        MappingLoadError: If the file does not exist, cannot be read, or is malformed
    """
    if not os.path.isfile(path):
        raise MappingLoadError(f"{path} does not exist!")

    try:
        with open_mapping_file(path) as fh:
            first_line = fh.readline()
            if first_line.rstrip("\r\n") == DOCNO_INDEX_HEADER:
                return _read_docno_index(fh)
            return _read_identifier_list(first_line, fh)
    except (OSError, UnicodeDecodeError, EOFError) as e:
        raise MappingLoadError(f"Error loading docno mapping data file {path}: {e}") from e
