"""Identifier generation for accounts and relationship edges.

Both use random UUID4 strings (36 chars, hyphenated).

INVARIANT: IDs are permanent. Once generated, an ID never changes.
"""

from __future__ import annotations

import re
import uuid

ID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")


def new_id() -> str:
    """Generate a fresh identifier."""
    return str(uuid.uuid4())


def is_valid_id(value: str) -> bool:
    """Check whether *value* looks like an identifier produced by :func:`new_id`."""
    return ID_PATTERN.match(value) is not None
