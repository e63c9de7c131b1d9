"""Account and relationship classification enums.

Values are the upper-case wire strings persisted in the database and
returned in JSON payloads.
"""

from __future__ import annotations

from enum import StrEnum


class RelationshipType(StrEnum):
    """Tag carried by an edge. Does not affect graph semantics."""

    PARENT_CHILD = "PARENT_CHILD"
    AFFILIATE = "AFFILIATE"
    PARTNER = "PARTNER"
    SUBSIDIARY = "SUBSIDIARY"
    OTHER = "OTHER"


class AccountType(StrEnum):
    CUSTOMER = "CUSTOMER"
    PROSPECT = "PROSPECT"
    PARTNER = "PARTNER"
    COMPETITOR = "COMPETITOR"
    OTHER = "OTHER"


class AccountStatus(StrEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    PENDING = "PENDING"
    CLOSED = "CLOSED"
