"""
Types and constants shared by the sqlhandle modules.
"""

# Copyright (C) 2026 The Psycopg Team

import sqlite3
from typing import Any, Callable, Mapping, Sequence, TypeVar, Union

from typing_extensions import TypeAlias

Query: TypeAlias = str
Params: TypeAlias = Union[Sequence[Any], Mapping[str, Any]]

ConnectionFactory: TypeAlias = Callable[[], sqlite3.Connection]
"""A callable returning a new DB-API connection to the database."""

# Return value from a callback
RV = TypeVar("RV")

# Exceptions raised by the database driver
DRIVER_ERRORS = (sqlite3.Error, sqlite3.Warning)
