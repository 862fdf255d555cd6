"""Repack module - Filter, compress and write docno-keyed container shards."""

from .record_filter import OutputRecord, RecordFilter
from .repack_wikipedia import repack_shard, repack_wikipedia

__all__ = ["OutputRecord", "RecordFilter", "repack_shard", "repack_wikipedia"]
