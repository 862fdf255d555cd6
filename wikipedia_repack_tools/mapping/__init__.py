"""Mapping module - Docno mapping loading, building and publication."""

from .docno_mapping import NOT_FOUND, DocnoMapping, MappingLoadError, load_docno_mapping

__all__ = ["DocnoMapping", "MappingLoadError", "NOT_FOUND", "load_docno_mapping"]
