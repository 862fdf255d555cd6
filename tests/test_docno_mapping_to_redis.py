#!/usr/bin/env python3
"""
Test Suite for docno_mapping_to_redis.py - Publishing Docno Mappings to Redis
=============================================================================

RUNNING THE TESTS
=================
    pytest tests/test_docno_mapping_to_redis.py -v

MOCK TESTING APPROACH
======================
These tests use unittest.mock to simulate Redis without requiring a running
Redis server. The redis module is replaced in sys.modules, so the lazy import
inside submit_mapping_to_redis() picks up the mock.
"""

import os
import shutil
import tempfile
import unittest
from io import StringIO
from unittest.mock import MagicMock, patch

from wikipedia_repack_tools.mapping.docno_mapping_to_redis import main, submit_mapping_to_redis


class FakeRedisError(Exception):
    pass


def make_redis_module():
    mock_redis = MagicMock()
    mock_pipeline = MagicMock()
    mock_redis.pipeline.return_value = mock_pipeline

    mock_redis_module = MagicMock()
    mock_redis_module.Redis.return_value = mock_redis
    mock_redis_module.exceptions.RedisError = FakeRedisError
    return mock_redis_module, mock_redis, mock_pipeline


class TestSubmitMappingToRedis(unittest.TestCase):

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.mapping_file = os.path.join(self.test_dir, "docno.dat")
        with open(self.mapping_file, "w", encoding="utf-8") as f:
            f.write("12\n25\n39\n")

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_submit_single_file(self):
        mock_redis_module, mock_redis, mock_pipeline = make_redis_module()

        with patch.dict("sys.modules", {"redis": mock_redis_module}):
            submitted, errors = submit_mapping_to_redis([self.mapping_file], "docno:enwiki")

        self.assertEqual((submitted, errors), (3, 0))
        mock_redis.ping.assert_called_once()
        mock_redis.close.assert_called_once()
        hset_calls = [c[0] for c in mock_pipeline.hset.call_args_list]
        self.assertEqual(
            sorted(hset_calls),
            [("docno:enwiki", "12", 0), ("docno:enwiki", "25", 1), ("docno:enwiki", "39", 2)],
        )

    def test_connection_arguments(self):
        mock_redis_module, _, _ = make_redis_module()

        with patch.dict("sys.modules", {"redis": mock_redis_module}):
            submit_mapping_to_redis(
                [self.mapping_file],
                "docno:enwiki",
                redis_host="redis.example.com",
                redis_port=6380,
                redis_db=2,
                redis_password="secret",
                timeout=5,
            )

        mock_redis_module.Redis.assert_called_once_with(
            host="redis.example.com",
            port=6380,
            db=2,
            password="secret",
            socket_timeout=5,
            socket_connect_timeout=5,
        )

    def test_batch_submission(self):
        """With batch_size=2 and 5 entries, the pipeline executes 3 times (2 + 2 + 1)."""
        with open(self.mapping_file, "w", encoding="utf-8") as f:
            f.write("".join(f"{i}\n" for i in range(100, 105)))
        mock_redis_module, _, mock_pipeline = make_redis_module()

        with patch.dict("sys.modules", {"redis": mock_redis_module}):
            submitted, errors = submit_mapping_to_redis(
                [self.mapping_file], "docno:enwiki", batch_size=2
            )

        self.assertEqual((submitted, errors), (5, 0))
        self.assertEqual(mock_pipeline.execute.call_count, 3)

    def test_clear_existing(self):
        mock_redis_module, mock_redis, _ = make_redis_module()

        with patch.dict("sys.modules", {"redis": mock_redis_module}):
            submit_mapping_to_redis([self.mapping_file], "docno:enwiki", clear_existing=True)

        mock_redis.delete.assert_called_once_with("docno:enwiki")

    def test_dry_run(self):
        """Dry run loads and counts the mapping without touching Redis."""
        mock_redis_module, _, _ = make_redis_module()

        with patch.dict("sys.modules", {"redis": mock_redis_module}):
            submitted, errors = submit_mapping_to_redis(
                [self.mapping_file], "docno:enwiki", dry_run=True
            )

        self.assertEqual((submitted, errors), (3, 0))
        mock_redis_module.Redis.assert_not_called()

    def test_connection_failure(self):
        mock_redis_module, mock_redis, mock_pipeline = make_redis_module()
        mock_redis.ping.side_effect = FakeRedisError("Connection refused")

        with patch.dict("sys.modules", {"redis": mock_redis_module}), patch(
            "sys.stderr", new=StringIO()
        ) as err:
            submitted, errors = submit_mapping_to_redis([self.mapping_file], "docno:enwiki")

        self.assertEqual((submitted, errors), (0, 1))
        self.assertIn("Failed to connect to Redis", err.getvalue())
        mock_pipeline.execute.assert_not_called()

    def test_batch_failure_counted(self):
        mock_redis_module, _, mock_pipeline = make_redis_module()
        mock_pipeline.execute.side_effect = FakeRedisError("READONLY")

        with patch.dict("sys.modules", {"redis": mock_redis_module}), patch(
            "sys.stderr", new=StringIO()
        ):
            submitted, errors = submit_mapping_to_redis([self.mapping_file], "docno:enwiki")

        self.assertEqual((submitted, errors), (0, 3))

    def test_invalid_mapping_counted_as_error(self):
        duplicate = os.path.join(self.test_dir, "dup.dat")
        with open(duplicate, "w", encoding="utf-8") as f:
            f.write("1\n2\n1\n")
        mock_redis_module, _, _ = make_redis_module()

        with patch.dict("sys.modules", {"redis": mock_redis_module}), patch(
            "sys.stderr", new=StringIO()
        ) as err:
            submitted, errors = submit_mapping_to_redis(
                [duplicate, self.mapping_file], "docno:enwiki"
            )

        self.assertEqual((submitted, errors), (3, 1))
        self.assertIn("Duplicate", err.getvalue())


class TestCLIIntegration(unittest.TestCase):

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.mapping_file = os.path.join(self.test_dir, "docno.dat")
        with open(self.mapping_file, "w", encoding="utf-8") as f:
            f.write("12\n")

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    @patch("wikipedia_repack_tools.mapping.docno_mapping_to_redis.submit_mapping_to_redis")
    def test_cli_basic_invocation(self, mock_submit):
        mock_submit.return_value = (1, 0)

        main(["-i", self.mapping_file, "-k", "docno:enwiki", "--host", "redis.local", "--clear"])

        kwargs = mock_submit.call_args[1]
        self.assertEqual(kwargs["mapping_paths"], [self.mapping_file])
        self.assertEqual(kwargs["redis_key"], "docno:enwiki")
        self.assertEqual(kwargs["redis_host"], "redis.local")
        self.assertTrue(kwargs["clear_existing"])

    @patch("wikipedia_repack_tools.mapping.docno_mapping_to_redis.submit_mapping_to_redis")
    def test_cli_errors_exit_nonzero(self, mock_submit):
        mock_submit.return_value = (0, 2)

        with self.assertRaises(SystemExit) as ctx:
            main(["-i", self.mapping_file, "-k", "docno:enwiki"])

        self.assertEqual(ctx.exception.code, 1)

    @patch("wikipedia_repack_tools.mapping.docno_mapping_to_redis.submit_mapping_to_redis")
    def test_cli_missing_required_args(self, mock_submit):
        with patch("sys.stderr", new=StringIO()):
            with self.assertRaises(SystemExit):
                main(["-i", self.mapping_file])

        mock_submit.assert_not_called()

    def test_cli_invalid_batch_size(self):
        with patch("sys.stderr", new=StringIO()):
            with self.assertRaises(SystemExit):
                main(["-i", self.mapping_file, "-k", "docno:enwiki", "--batch-size", "0"])


if __name__ == "__main__":
    unittest.main()
