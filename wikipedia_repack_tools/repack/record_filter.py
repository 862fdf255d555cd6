"""
Filter and rekey document records against a docno mapping.

Pages whose identifier is missing or not in the mapping are dropped
silently. The mapping covers only a subset of the dump (articles, no
redirects or disambiguation pages). Dropped records are only reflected in
the difference between the seen and emitted counters.
"""

from typing import Iterable, Iterator, NamedTuple, Optional

from ..dump.wikipedia_dump import DocumentRecord
from ..mapping.docno_mapping import NOT_FOUND, DocnoMapping


class OutputRecord(NamedTuple):
    docno: int
    content: bytes


class RecordFilter:
    """Per-shard filter/rekeyer. Not shared between shards; the mapping is."""

    def __init__(self, mapping: DocnoMapping):
        self.mapping = mapping
        self.seen = 0
        self.emitted = 0

    def process(self, record: DocumentRecord) -> Optional[OutputRecord]:
        """Return the rekeyed record, or None if it is dropped."""
        self.seen += 1

        # We're going to discard pages that aren't in the docno mapping.
        docno = self.mapping.lookup(record.identifier)
        if docno == NOT_FOUND:
            return None

        self.emitted += 1
        return OutputRecord(docno, record.content)


def filter_records(
    records: Iterable[DocumentRecord], record_filter: RecordFilter
) -> Iterator[OutputRecord]:
    """Yield the emitted records in input order."""
    for record in records:
        output = record_filter.process(record)
        if output is not None:
            yield output
