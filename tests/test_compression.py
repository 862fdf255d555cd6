#!/usr/bin/env python3
"""
Test suite for compression.py - Compression Policy
==================================================

1. TestValidateCompressionType - Only block, record and none are accepted
2. TestRecordFraming - Framing and un-framing of (docno, content) pairs
3. TestBlockAccumulator - Byte-count driven block boundaries
4. TestGzipCodec - Codec round trip and reproducible output
"""

import gzip
import unittest

from wikipedia_repack_tools.repack.compression import (
    COMPRESSION_TYPES,
    DEFAULT_BLOCK_SIZE,
    BlockAccumulator,
    ConfigurationError,
    GzipCodec,
    frame_record,
    get_codec,
    parse_framed_records,
    validate_compression_type,
)


class TestValidateCompressionType(unittest.TestCase):

    def test_valid_types(self):
        for compression_type in ("block", "record", "none"):
            self.assertEqual(validate_compression_type(compression_type), compression_type)

    def test_supported_types(self):
        self.assertEqual(set(COMPRESSION_TYPES), {"block", "record", "none"})

    def test_invalid_type(self):
        with self.assertRaises(ConfigurationError) as ctx:
            validate_compression_type("gzip")

        self.assertIn("unknown compression type", str(ctx.exception))

    def test_case_sensitive(self):
        with self.assertRaises(ConfigurationError):
            validate_compression_type("BLOCK")

    def test_configuration_error_is_value_error(self):
        self.assertTrue(issubclass(ConfigurationError, ValueError))

    def test_default_block_size(self):
        self.assertEqual(DEFAULT_BLOCK_SIZE, 1000000)


class TestRecordFraming(unittest.TestCase):

    def test_frame_layout(self):
        self.assertEqual(frame_record(7, b"hello"), b"7\t5\nhello\n")

    def test_content_with_newlines_and_tabs(self):
        content = b"<page>\n\t<id>7</id>\n</page>\n"
        framed = frame_record(7, content) + frame_record(3, b"")

        self.assertEqual(parse_framed_records(framed), [(7, content), (3, b"")])

    def test_utf8_content_length_in_bytes(self):
        content = "Begriffsklärung".encode("utf-8")

        framed = frame_record(1, content)

        self.assertTrue(framed.startswith(b"1\t%d\n" % len(content)))
        self.assertEqual(parse_framed_records(framed), [(1, content)])

    def test_empty_data(self):
        self.assertEqual(parse_framed_records(b""), [])

    def test_truncated_content(self):
        framed = frame_record(1, b"abcdef")

        with self.assertRaises(ValueError):
            parse_framed_records(framed[:-3])

    def test_truncated_header(self):
        with self.assertRaises(ValueError):
            parse_framed_records(b"1\t6")


class TestBlockAccumulator(unittest.TestCase):

    def group(self, sizes, threshold):
        """Return block membership (lists of record indexes) for a sequence of sizes."""
        acc = BlockAccumulator(threshold)
        blocks = []
        current = []
        for i, size in enumerate(sizes):
            current.append(i)
            block = acc.add(b"x" * size)
            if block is not None:
                self.assertEqual(len(block), len(current))
                blocks.append(current)
                current = []
        tail = acc.flush()
        if tail is not None:
            self.assertEqual(len(tail), len(current))
            blocks.append(current)
        return blocks

    def test_seals_when_threshold_reached(self):
        acc = BlockAccumulator(100)

        self.assertIsNone(acc.add(b"a" * 40))
        self.assertIsNone(acc.add(b"b" * 40))
        block = acc.add(b"c" * 40)

        self.assertEqual(block, [b"a" * 40, b"b" * 40, b"c" * 40])
        self.assertEqual(acc.pending_size, 0)
        self.assertIsNone(acc.flush())

    def test_exact_threshold_seals(self):
        acc = BlockAccumulator(100)

        self.assertIsNone(acc.add(b"a" * 50))
        self.assertEqual(len(acc.add(b"b" * 50)), 2)

    def test_oversized_record_is_own_block(self):
        self.assertEqual(self.group([500, 10, 10], threshold=100), [[0], [1, 2]])

    def test_trailing_partial_block(self):
        acc = BlockAccumulator(100)
        acc.add(b"a" * 30)
        acc.add(b"b" * 30)

        self.assertEqual(len(acc), 2)
        self.assertEqual(acc.pending_size, 60)
        self.assertEqual(acc.flush(), [b"a" * 30, b"b" * 30])
        self.assertEqual(len(acc), 0)

    def test_boundaries_depend_on_bytes_not_counts(self):
        self.assertEqual(self.group([10] * 10, threshold=25), [[0, 1, 2], [3, 4, 5], [6, 7, 8], [9]])
        self.assertEqual(self.group([30, 1, 1, 30], threshold=25), [[0], [1, 2, 3]])

    def test_deterministic(self):
        sizes = [(i * 7919) % 1000 + 1 for i in range(500)]

        first = self.group(sizes, threshold=4096)
        second = self.group(sizes, threshold=4096)

        self.assertEqual(first, second)
        self.assertEqual([i for block in first for i in block], list(range(500)))

    def test_invalid_threshold(self):
        with self.assertRaises(ConfigurationError):
            BlockAccumulator(0)


class TestGzipCodec(unittest.TestCase):

    def test_round_trip(self):
        codec = GzipCodec()
        data = b"0\t5\nhello\n" * 100

        self.assertEqual(codec.decompress(codec.compress(data)), data)

    def test_output_is_plain_gzip_member(self):
        compressed = GzipCodec(compress_level=9).compress(b"payload")

        self.assertEqual(gzip.decompress(compressed), b"payload")

    def test_reproducible(self):
        codec = GzipCodec()

        self.assertEqual(codec.compress(b"same input"), codec.compress(b"same input"))

    def test_invalid_level(self):
        with self.assertRaises(ConfigurationError):
            GzipCodec(compress_level=0)

    def test_get_codec(self):
        codec = get_codec("gzip", compress_level=3)

        self.assertEqual(codec.name, "gzip")
        self.assertEqual(codec.compress_level, 3)

    def test_unknown_codec(self):
        with self.assertRaises(ConfigurationError):
            get_codec("lz4")


if __name__ == "__main__":
    unittest.main()
