#!/usr/bin/env python3
"""
docno_mapping_to_redis.py - Publish Docno Mappings to Redis
===========================================================

Loads a docno mapping file and stores every identifier -> docno pair in a
Redis hash, so serving systems can resolve page ids to docnos without loading
the mapping file themselves.

COMMAND-LINE USAGE
==================

    # Publish to local Redis (default localhost:6379)
    docno-mapping-to-redis -i docno.dat -k docno:enwiki-20240101

    # Remote server, replacing the previous hash
    docno-mapping-to-redis -i docno.dat -k docno:enwiki --host redis.example.com --clear

    # Validate the mapping only
    docno-mapping-to-redis -i docno.dat -k docno:enwiki --dry-run -v

REDIS DATA STRUCTURE
====================

    Key:   <redis_key> (specified by user)
    Field: <identifier>
    Value: <docno>

Example:
    Key: "docno:enwiki-20240101"
    Field: "12"
    Value: "0"
"""

import argparse
import sys
import time
from typing import List, Optional, Tuple

from .docno_mapping import MappingLoadError, load_docno_mapping


def submit_mapping_to_redis(
    mapping_paths: List[str],
    redis_key: str,
    redis_host: str = "localhost",
    redis_port: int = 6379,
    redis_db: int = 0,
    redis_password: Optional[str] = None,
    batch_size: int = 500,
    timeout: int = 10,
    clear_existing: bool = False,
    dry_run: bool = False,
    verbose: bool = False,
) -> Tuple[int, int]:
    """
    Submit docno mapping entries to a Redis hash.

    Args:
        mapping_paths: Docno mapping files
        redis_key: Redis hash key (e.g., 'docno:enwiki-20240101')
        redis_host: Redis server hostname
        redis_port: Redis server port
        redis_db: Redis database number
        redis_password: Redis password (optional)
        batch_size: Number of entries to submit in one pipeline
        timeout: Connection timeout in seconds
        clear_existing: Delete the hash key before inserting
        dry_run: Only load and validate mappings, don't write to Redis
        verbose: Print progress information

    Returns:
        Tuple of (entries_submitted, errors_encountered)
    """
    total_submitted = 0
    total_errors = 0
    start_time = time.time()
    redis_client = None

    if dry_run:
        if verbose:
            print("# DRY RUN MODE - No data will be written to Redis", file=sys.stderr)
    else:
        try:
            import redis  # pylint: disable=import-outside-toplevel
        except ImportError:
            print(
                "Error: redis package not installed. Install with: pip install redis",
                file=sys.stderr,
            )
            return 0, 1

        if verbose:
            print(f"# Connecting to Redis: {redis_host}:{redis_port}/{redis_db}", file=sys.stderr)

        try:
            redis_client = redis.Redis(
                host=redis_host,
                port=redis_port,
                db=redis_db,
                password=redis_password,
                socket_timeout=timeout,
                socket_connect_timeout=timeout,
            )
            redis_client.ping()
        except redis.exceptions.RedisError as e:
            print(f"Error: Failed to connect to Redis: {e}", file=sys.stderr)
            return 0, 1

        if clear_existing:
            if verbose:
                print(f"# Clearing existing hash key: {redis_key}", file=sys.stderr)
            redis_client.delete(redis_key)

    for mapping_path in mapping_paths:
        if verbose:
            print(f"\n# Processing: {mapping_path}", file=sys.stderr)

        try:
            mapping = load_docno_mapping(mapping_path)
        except MappingLoadError as e:
            print(f"Error: {e}", file=sys.stderr)
            total_errors += 1
            continue

        batch = []
        file_submitted = 0
        file_errors = 0

        def submit(entries):
            if dry_run:
                return len(entries), 0
            try:
                pipe = redis_client.pipeline()
                for identifier, docno in entries:
                    pipe.hset(redis_key, identifier, docno)
                pipe.execute()
                return len(entries), 0
            except Exception as e:  # pylint: disable=broad-except
                print(f"Error submitting batch: {e}", file=sys.stderr)
                return 0, len(entries)

        for entry in mapping.items():
            batch.append(entry)
            if len(batch) >= batch_size:
                submitted, errors = submit(batch)
                file_submitted += submitted
                file_errors += errors
                batch = []

                if verbose and file_submitted and file_submitted % 100000 == 0:
                    elapsed = time.time() - start_time
                    rate = file_submitted / elapsed if elapsed > 0 else 0
                    print(
                        f"  -> Submitted {file_submitted} entries ({rate:.0f} entries/sec)",
                        file=sys.stderr,
                    )

        if batch:
            submitted, errors = submit(batch)
            file_submitted += submitted
            file_errors += errors

        total_submitted += file_submitted
        total_errors += file_errors

        if verbose:
            print(
                f"# Completed {mapping_path}: {file_submitted} entries, {file_errors} errors",
                file=sys.stderr,
            )

    if redis_client is not None:
        redis_client.close()

    if verbose:
        elapsed = time.time() - start_time
        print(f"# Entries submitted: {total_submitted}", file=sys.stderr)
        print(f"# Errors: {total_errors}", file=sys.stderr)
        print(f"# Time elapsed: {elapsed:.1f} seconds", file=sys.stderr)

    return total_submitted, total_errors


def main(argv=None):
    """
    Command-line interface.
    """
    parser = argparse.ArgumentParser(
        description="Publish docno mapping files to a Redis hash",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s -i docno.dat -k docno:enwiki
  %(prog)s -i docno.dat -k docno:enwiki --host redis.example.com --clear
  %(prog)s -i docno.dat -k docno:enwiki --dry-run --verbose
        """,
    )
    parser.add_argument(
        "-i",
        "--input",
        action="append",
        dest="inputs",
        required=True,
        help="Docno mapping file(s) (can specify multiple times)",
    )
    parser.add_argument("-k", "--redis-key", required=True, help="Redis hash key")

    redis_conn = parser.add_argument_group("Redis connection")
    redis_conn.add_argument("--host", default="localhost", help="Redis host (default: localhost)")
    redis_conn.add_argument("--port", type=int, default=6379, help="Redis port (default: 6379)")
    redis_conn.add_argument("--db", type=int, default=0, help="Redis database number (default: 0)")
    redis_conn.add_argument("--password", help="Redis password (optional)")
    redis_conn.add_argument(
        "--timeout", type=int, default=10, help="Connection timeout in seconds (default: 10)"
    )

    behavior_group = parser.add_argument_group("Behavior options")
    behavior_group.add_argument(
        "--batch-size", type=int, default=500, help="Number of entries per batch (default: 500)"
    )
    behavior_group.add_argument(
        "--clear", action="store_true", help="Clear existing hash key before inserting"
    )
    behavior_group.add_argument(
        "--dry-run", action="store_true", help="Load and validate only, don't write to Redis"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Print detailed progress and statistics"
    )

    args = parser.parse_args(argv)

    if args.batch_size < 1:
        parser.error("Batch size must be at least 1")

    try:
        _submitted, errors = submit_mapping_to_redis(
            mapping_paths=args.inputs,
            redis_key=args.redis_key,
            redis_host=args.host,
            redis_port=args.port,
            redis_db=args.db,
            redis_password=args.password,
            batch_size=args.batch_size,
            timeout=args.timeout,
            clear_existing=args.clear,
            dry_run=args.dry_run,
            verbose=args.verbose,
        )
        if errors > 0:
            sys.exit(1)
    except KeyboardInterrupt:
        print("\n# Interrupted by user", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
