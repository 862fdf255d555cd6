"""Dump module - Streaming page reader for MediaWiki XML dumps."""

from .wikipedia_dump import DocumentRecord, read_documents

__all__ = ["DocumentRecord", "read_documents"]
