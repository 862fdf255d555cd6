"""
wikipedia_dump.py - Stream Page Records out of MediaWiki XML Dumps
==================================================================

Reads a MediaWiki XML export (pages-articles.xml, plain, .gz or .bz2) and
yields one DocumentRecord per <page> element, lazily, without loading the dump
into memory.

Pages are located by scanning for the <page> ... </page> markers line by line;
only the bytes of a single page are ever parsed as XML. The raw page bytes are
kept untouched as the record content, so the repacked container stores exactly
what the dump contained.

Page fields used downstream:

    identifier   <page><id> (None when missing or the page is malformed)
    title        <page><title>
    namespace    <page><ns> (0 = article)
    is_redirect  presence of <redirect/>
    text         <revision><text> (wikitext)
"""

import bz2
import gzip
import re
import sys
import xml.etree.ElementTree as ET
from typing import BinaryIO, Iterator, NamedTuple, Optional

PAGE_START = b"<page>"
PAGE_END = b"</page>"

# Disambiguation templates per two-letter language code
DISAMBIGUATION_PATTERNS = {
    "en": re.compile(r"\{\{\s*(disambig\w*|dab|hndis|geodis|set index)\s*(\|[^}]*)?\}\}", re.I),
    "de": re.compile(r"\{\{\s*begriffskl(ä|ae)rung\s*(\|[^}]*)?\}\}", re.I),
    "sv": re.compile(r"\{\{\s*(förgrening|gren|grensida)\s*(\|[^}]*)?\}\}", re.I),
    "pt": re.compile(r"\{\{\s*(desambiguação|desambig|dab)\s*(\|[^}]*)?\}\}", re.I),
    "es": re.compile(r"\{\{\s*(desambiguación|desambig)\s*(\|[^}]*)?\}\}", re.I),
    "fr": re.compile(r"\{\{\s*(homonymie|bandeau standard pour page d'homonymie)\s*(\|[^}]*)?\}\}", re.I),
    "it": re.compile(r"\{\{\s*(disambigua|disambig)\s*(\|[^}]*)?\}\}", re.I),
    "nl": re.compile(r"\{\{\s*(dp|dpintro|disambiguation)\s*(\|[^}]*)?\}\}", re.I),
}

LANGUAGE_PATTERN = re.compile(r"^[a-z]{2}$")


class DocumentRecord(NamedTuple):
    identifier: Optional[str]
    content: bytes
    length: int
    title: Optional[str] = None
    namespace: Optional[int] = None
    is_redirect: bool = False
    text: str = ""


def validate_language(language: Optional[str]) -> Optional[str]:
    """Return the language tag if it is None or a two-letter code, else raise ValueError."""
    if language is None:
        return None
    if not LANGUAGE_PATTERN.match(language):
        raise ValueError(f'"{language}" unknown language!')
    return language


def is_disambiguation(text: str, language: Optional[str] = None) -> bool:
    """Check wikitext for a disambiguation template of the given language (default: en)."""
    pattern = DISAMBIGUATION_PATTERNS.get(language or "en", DISAMBIGUATION_PATTERNS["en"])
    return pattern.search(text) is not None


def open_input_path(path: str) -> BinaryIO:
    """Open input for binary reading. Supports '-' (stdin), .gz and .bz2 files."""
    if path == "-":
        return sys.stdin.buffer
    if path.endswith(".gz"):
        return gzip.open(path, "rb")
    if path.endswith(".bz2"):
        return bz2.open(path, "rb")
    return open(path, "rb")


def iter_pages(fh: BinaryIO) -> Iterator[bytes]:
    """
    Yield the raw bytes of every <page> ... </page> element in a dump stream.

    Several pages on one line are yielded separately. A trailing page without
    its closing tag (truncated dump) is not yielded.
    """
    buf = None
    for line in fh:
        while line:
            if buf is None:
                start = line.find(PAGE_START)
                if start == -1:
                    break
                buf = []
                line = line[start:]

            end = line.find(PAGE_END)
            if end == -1:
                buf.append(line)
                break

            end += len(PAGE_END)
            buf.append(line[:end])
            yield b"".join(buf)
            buf = None
            line = line[end:]

    if buf:
        print("Warning: Truncated <page> element at end of input", file=sys.stderr)


def parse_page(raw: bytes) -> DocumentRecord:
    """
    Parse the fields of one raw page.

    Malformed pages are not fatal: they come back with identifier None so the
    filter drops them like any other unmapped page.
    """
    try:
        page = ET.fromstring(raw)
    except ET.ParseError:
        return DocumentRecord(identifier=None, content=raw, length=len(raw))

    identifier = (page.findtext("id") or "").strip() or None
    title = page.findtext("title")

    ns = page.findtext("ns")
    try:
        namespace = int(ns) if ns is not None else None
    except ValueError:
        namespace = None

    return DocumentRecord(
        identifier=identifier,
        content=raw,
        length=len(raw),
        title=title,
        namespace=namespace,
        is_redirect=page.find("redirect") is not None,
        text=page.findtext("revision/text") or "",
    )


def read_documents(input_path: str) -> Iterator[DocumentRecord]:
    """Generator of DocumentRecords for every page in a dump file (or '-' for stdin)."""
    fh = open_input_path(input_path)
    try:
        for raw in iter_pages(fh):
            yield parse_page(raw)
    finally:
        if input_path != "-":
            fh.close()
