"""Helpers for reconciling stored pictures with the files on disk."""

from __future__ import annotations

import logging
import os
from pathlib import Path

_logger = logging.getLogger(__name__)


def collect_existing_keys(directory: str | os.PathLike[str]) -> set[str]:
    """Return the absolute path of every file below *directory*.

    Pictures are keyed by their absolute file path, so the result can be
    passed straight to ``reconcile_with_existing``.  A missing directory
    yields an empty set.
    """
    root = Path(directory)
    if not root.is_dir():
        _logger.debug("Pictures directory %s does not exist", root)
        return set()
    keys = {str(path.absolute()) for path in root.rglob("*") if path.is_file()}
    _logger.debug("Found %d picture files below %s", len(keys), root)
    return keys
