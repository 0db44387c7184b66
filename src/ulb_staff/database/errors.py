from __future__ import annotations

import re
from typing import Optional

_KEY_RE = re.compile(r"for key '(?:[\w$]+\.)?([\w$]+)'")


class DuplicateKeyError(Exception):
    """A unique key was violated by a write.

    ``key`` is the constraint name from schema.sql (e.g. ``uq_staff_email``).
    Services translate it into a domain Conflict.
    """

    def __init__(self, key: str, message: str = ""):
        super().__init__(message or f"Duplicate entry for key {key}")
        self.key = key


def duplicate_key_name(message: str) -> Optional[str]:
    """Extract the key name from a MySQL 1062 error message."""
    m = _KEY_RE.search(message or "")
    return m.group(1) if m else None
