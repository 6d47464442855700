"""
Enum values for sqlhandle

These values are defined by us and are not necessarily dependent on the
database the handles talk to.
"""

# Copyright (C) 2026 The Psycopg Team

from enum import IntEnum


class IsolationLevel(IntEnum):
    """
    Enum representing the isolation level for a transaction.
    """

    __module__ = "sqlhandle"

    READ_UNCOMMITTED = 1
    """:sql:`READ UNCOMMITTED` isolation level."""
    READ_COMMITTED = 2
    """:sql:`READ COMMITTED` isolation level."""
    REPEATABLE_READ = 3
    """:sql:`REPEATABLE READ` isolation level."""
    SERIALIZABLE = 4
    """:sql:`SERIALIZABLE` isolation level."""
