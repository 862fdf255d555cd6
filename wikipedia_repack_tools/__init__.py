"""
Wikipedia Repack Tools

A Python package for repacking Wikipedia XML dumps into docno-keyed containers.
Filters pages against a precomputed docno mapping, rekeys them by dense integer
docnos and writes sharded, optionally block-compressed containers.

Modules:
    mapping: Docno mapping loading, building and Redis publication
    dump: Streaming page reader for MediaWiki XML dumps
    repack: Record filter, compression policy, shard writer/reader and the repack job
"""

__version__ = "1.0.0"

from .mapping.docno_mapping import NOT_FOUND, DocnoMapping, MappingLoadError, load_docno_mapping
from .repack.compression import ConfigurationError
from .repack.repack_wikipedia import repack_wikipedia

__all__ = [
    "DocnoMapping",
    "MappingLoadError",
    "NOT_FOUND",
    "load_docno_mapping",
    "ConfigurationError",
    "repack_wikipedia",
    "__version__",
]
