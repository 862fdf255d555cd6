"""
File discovery and progress helpers shared by the command-line tools.
"""

import os
import sys
from typing import Iterable, List

from .repack.compression import ConfigurationError


def log_progress(message, verbose=False):
    """Log progress message to stderr if verbose is enabled."""
    if verbose:
        print(message, file=sys.stderr)


def get_input_files(paths: Iterable[str]) -> List[str]:
    """
    Expand input paths into the list of shard inputs (one shard per file).

    Directories are walked recursively; hidden files are skipped. Files keep
    the order given, directory contents are sorted.

    Raises:
        ConfigurationError: If a path does not exist or nothing is found
    """
    files = []
    for path in paths:
        if os.path.isfile(path):
            files.append(path)
        elif os.path.isdir(path):
            found = []
            for root, _, names in os.walk(path):
                for name in names:
                    if not name.startswith("."):
                        found.append(os.path.join(root, name))
            files.extend(sorted(found))
        else:
            raise ConfigurationError(f"Input path does not exist: {path}")

    if not files:
        raise ConfigurationError("No input files found")
    return files
