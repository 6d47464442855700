"""
Execution of several statements in one go.
"""

# Copyright (C) 2026 The Psycopg Team

from typing import List, TYPE_CHECKING

from .abc import DRIVER_ERRORS, Query
from ._context import StatementContext

if TYPE_CHECKING:
    from .handle import Handle


class Batch:
    """
    A list of statements executed together on the same cursor.

    The statements are not prepared and take no parameter: syntax errors are
    reported as execution failures of the statement that contains them.
    """

    __module__ = "sqlhandle"

    def __init__(self, handle: "Handle"):
        self._handle = handle
        self._queries: List[Query] = []

    def __repr__(self) -> str:
        cls = f"{self.__class__.__module__}.{self.__class__.__qualname__}"
        return f"<{cls} ({len(self._queries)} statements) at 0x{id(self):x}>"

    def __len__(self) -> int:
        return len(self._queries)

    def add(self, query: Query) -> "Batch":
        """Add a statement to the batch."""
        self._queries.append(query)
        return self

    def execute(self) -> List[int]:
        """
        Execute the statements added and return the rows affected by each one.

        The batch is emptied after a successful execution.
        """
        handle = self._handle
        with handle.lock:
            policy = handle._check_open()
            if not self._queries:
                return []

            try:
                cur = handle._conn.cursor()
            except DRIVER_ERRORS as ex:
                ctx = StatementContext(
                    handle, ";\n".join(self._queries), None, handle.attributes
                )
                policy.unable_to_create_statement(ex, ctx)

            rv = []
            try:
                for query in self._queries:
                    ctx = StatementContext(handle, query, None, handle.attributes)
                    ctx._set_rendered(query, None)
                    try:
                        cur.execute(query)
                    except DRIVER_ERRORS as ex:
                        policy.unable_to_execute_statement(ex, ctx)
                    rv.append(cur.rowcount)
            finally:
                cur.close()

            self._queries.clear()
            return rv
