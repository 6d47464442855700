"""
sqlhandle result objects
"""

# Copyright (C) 2026 The Psycopg Team

import sqlite3
from types import TracebackType
from typing import Any, Callable, Generic, Iterator, List, Optional, Sequence
from typing import Type, TypeVar, TYPE_CHECKING

from . import errors as e
from .abc import DRIVER_ERRORS
from .rows import Row, RowMaker, RowFactory
from ._context import StatementContext

if TYPE_CHECKING:
    from .handle import Handle

T = TypeVar("T")


class Result(Generic[Row]):
    """
    The rows returned by `Handle.query()`.

    The object is an iterable of rows, built by the `!row_factory`
    specified. It can be used as context manager to close the underlying
    cursor.
    """

    __module__ = "sqlhandle"

    __slots__ = ("_handle", "_cur", "_ctx", "_make_row", "_closed")

    _make_row: RowMaker[Row]

    def __init__(
        self,
        handle: "Handle",
        cursor: sqlite3.Cursor,
        context: StatementContext,
        row_factory: RowFactory[Row],
    ):
        self._handle = handle
        self._cur = cursor
        self._ctx = context
        self._closed = False

        try:
            self._make_row = row_factory(cursor)
        except Exception as ex:
            cursor.close()
            self._closed = True
            handle.exception_policy.unable_to_produce_result(ex, context)

    def __repr__(self) -> str:
        cls = f"{self.__class__.__module__}.{self.__class__.__qualname__}"
        status = "closed" if self._closed else "open"
        return f"<{cls} [{status}] {self._ctx.sql!r} at 0x{id(self):x}>"

    def __enter__(self) -> "Result[Row]":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()

    def __iter__(self) -> Iterator[Row]:
        while True:
            rec = self._fetch(self._cur.fetchone)
            if rec is None:
                return
            yield self._make(rec)

    @property
    def context(self) -> StatementContext:
        """The context of the statement which produced the result."""
        return self._ctx

    @property
    def description(self) -> Optional[Sequence[Any]]:
        """The DB-API description of the columns of the result."""
        return self._cur.description

    @property
    def rowcount(self) -> int:
        """Number of records affected by the statement, -1 if not known."""
        return self._cur.rowcount

    @property
    def closed(self) -> bool:
        """`True` if the result is closed."""
        return self._closed

    def close(self) -> None:
        """Close the result and free the associated resources."""
        if self._closed:
            return
        self._closed = True
        try:
            self._cur.close()
        except DRIVER_ERRORS as ex:
            self._handle.exception_policy.close_failure(
                "Unable to close the result set", ex
            )

    def fetchone(self) -> Optional[Row]:
        """
        Return the next record from the result.

        Return `!None` the recordset is finished.
        """
        rec = self._fetch(self._cur.fetchone)
        return self._make(rec) if rec is not None else None

    def fetchmany(self, size: int = 0) -> List[Row]:
        """
        Return the next *size* records from the result.

        *size* default to the cursor `!arraysize` if not specified or 0.
        """
        recs = self._fetch(lambda: self._cur.fetchmany(size or self._cur.arraysize))
        return [self._make(rec) for rec in recs]

    def fetchall(self) -> List[Row]:
        """Return all the remaining records from the result."""
        recs = self._fetch(self._cur.fetchall)
        return [self._make(rec) for rec in recs]

    def one(self) -> Row:
        """
        Return the only row of the result.

        Fail if the result has no row or more than one.
        """
        recs = self._fetch(lambda: self._cur.fetchmany(2))
        if not recs:
            self._handle.exception_policy.no_results_failure(
                "Statement returned no results", None, self._ctx
            )
        if len(recs) > 1:
            self._handle.exception_policy.result_set_failure(
                "Expected one row, the statement returned more", None, self._ctx
            )
        return self._make(recs[0])

    def first(self) -> Row:
        """
        Return the next row of the result, failing if there is none.
        """
        rec = self._fetch(self._cur.fetchone)
        if rec is None:
            self._handle.exception_policy.no_results_failure(
                "Statement returned no results", None, self._ctx
            )
        return self._make(rec)

    def _fetch(self, fetch: Callable[[], T]) -> T:
        if self._closed:
            raise e.InterfaceError("the result is closed")
        with self._handle.lock:
            try:
                return fetch()
            except DRIVER_ERRORS as ex:
                self._handle.exception_policy.result_set_failure(
                    "Unable to fetch rows", ex, self._ctx
                )

    def _make(self, rec: Sequence[Any]) -> Row:
        try:
            return self._make_row(rec)
        except Exception as ex:
            self._handle.exception_policy.unable_to_produce_result(ex, self._ctx)
