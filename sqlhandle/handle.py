"""
sqlhandle handle objects
"""

# Copyright (C) 2026 The Psycopg Team

import re
import logging
import sqlite3
import warnings
import threading
from types import TracebackType
from typing import Any, Dict, Iterator, List, Optional, Tuple, Type
from typing import TYPE_CHECKING
from contextlib import contextmanager

from . import errors as e
from .abc import DRIVER_ERRORS, Params, Query
from .rows import Row, RowFactory, tuple_row
from .batch import Batch
from .policy import ExceptionPolicy, check_policy
from .result import Result
from ._enums import IsolationLevel
from ._context import StatementContext
from ._queries import SQLiteQuery
from .transaction import Transaction

if TYPE_CHECKING:
    from .database import Database

logger = logging.getLogger("sqlhandle")

# Failures happening while a statement is created
_CREATION_ERRORS = (e.ProgrammingError,) + DRIVER_ERRORS

# Statements that can't be prepared prepending EXPLAIN
_re_explain = re.compile(r"\s*explain\b", re.IGNORECASE)

# Isolation levels available in SQLite, with the value of read_uncommitted
_SQLITE_LEVELS = {
    IsolationLevel.READ_UNCOMMITTED: 1,
    IsolationLevel.SERIALIZABLE: 0,
}


class Handle:
    """
    Wrapper for a connection to the database.

    Every failure happening while using the handle is reported through its
    `exception_policy`.
    """

    __module__ = "sqlhandle"

    def __init__(
        self,
        connection: sqlite3.Connection,
        *,
        exception_policy: Optional[ExceptionPolicy] = None,
        row_factory: Optional[RowFactory[Any]] = None,
        prepare: bool = True,
        attributes: Optional[Dict[str, Any]] = None,
        database: Optional["Database"] = None,
    ):
        self._conn = connection
        self._policy = check_policy(exception_policy)
        self._policy_lock = threading.Lock()
        self.lock = threading.RLock()

        self.row_factory: RowFactory[Any] = row_factory or tuple_row
        self.prepare = prepare
        self.attributes: Dict[str, Any] = dict(attributes or {})
        self.database = database

        self._closed = False
        # Stack of savepoint names managed by current transaction blocks.
        # the first item is "" in case the outermost Transaction must manage
        # only a begin/commit and not a savepoint.
        self._savepoints: List[str] = []
        # Autocommit state to restore at the end of the current transaction
        self._autocommit_to_restore: Optional[bool] = None

    def __del__(self) -> None:
        # If fails on init we might not have this attribute yet
        if not hasattr(self, "_closed"):
            return

        # Handle correctly closed
        if self._closed:
            return

        warnings.warn(
            f"handle {self} was deleted while still open."
            f" Please use 'with' or '.close()' to close the handle",
            ResourceWarning,
        )

    def __repr__(self) -> str:
        cls = f"{self.__class__.__module__}.{self.__class__.__qualname__}"
        if self._closed:
            status = "closed"
        elif self._in_transaction():
            status = "in transaction"
        else:
            status = "idle"
        return f"<{cls} [{status}] at 0x{id(self):x}>"

    def __enter__(self) -> "Handle":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        if self._closed:
            return

        if not exc_type:
            self.close()
            return

        # try to rollback, but if there are problems (connection in a bad
        # state) just warn without clobbering the exception bubbling up.
        if self._autocommit_to_restore is not None:
            try:
                self.rollback()
            except Exception as exc2:
                logger.warning(
                    "error ignored rolling back transaction on %s: %s",
                    self,
                    exc2,
                )
        try:
            self.close()
        except Exception as exc2:
            logger.warning("error ignored closing %s: %s", self, exc2)

    @property
    def exception_policy(self) -> ExceptionPolicy:
        """The `ExceptionPolicy` used to report the failures of the handle."""
        return self._policy

    @exception_policy.setter
    def exception_policy(self, policy: Optional[ExceptionPolicy]) -> None:
        policy = check_policy(policy)
        with self._policy_lock:
            self._policy = policy
        logger.debug("%s: exception policy set to %s", self, policy)

    @property
    def connection(self) -> sqlite3.Connection:
        """The DB-API connection wrapped by the handle."""
        self._check_open()
        return self._conn

    @property
    def closed(self) -> bool:
        """`!True` if the handle is closed."""
        return self._closed

    def define(self, name: str, value: Any) -> "Handle":
        """
        Define an attribute, made available to the statements contexts.
        """
        self.attributes[name] = value
        return self

    def close(self) -> None:
        """
        Close the handle.

        If a transaction started by the handle is still open, it is rolled
        back and the failure is reported after closing.
        """
        with self.lock:
            if self._closed:
                return

            policy = self._policy
            was_in_transaction = self._autocommit_to_restore is not None
            if was_in_transaction:
                try:
                    self._rollback(policy)
                except Exception as ex:
                    logger.warning(
                        "error ignored rolling back transaction on %s: %s",
                        self,
                        ex,
                    )
                self._savepoints.clear()

            self._closed = True
            try:
                self._conn.close()
            except DRIVER_ERRORS as ex:
                policy.close_failure("Unable to close handle", ex)

            if was_in_transaction:
                policy.transaction_failure(
                    "Improperly closed handle: the open transaction was"
                    " rolled back"
                )

    def execute(self, query: Query, params: Optional[Params] = None) -> int:
        """
        Execute a statement and return the number of rows affected.
        """
        with self.lock:
            policy = self._check_open()
            cur, ctx = self._create_statement(query, params, policy)
            try:
                self._execute(cur, ctx, policy)
                return cur.rowcount
            finally:
                cur.close()

    def query(
        self,
        query: Query,
        params: Optional[Params] = None,
        *,
        row_factory: Optional[RowFactory[Row]] = None,
    ) -> "Result[Row]":
        """
        Execute a query and return a `Result` to read its rows.
        """
        with self.lock:
            policy = self._check_open()
            cur, ctx = self._create_statement(query, params, policy)
            try:
                self._execute(cur, ctx, policy)
            except BaseException:
                cur.close()
                raise

        return Result(self, cur, ctx, row_factory or self.row_factory)

    def batch(self) -> Batch:
        """Return a new `Batch` to execute several statements together."""
        return Batch(self)

    @property
    def autocommit(self) -> bool:
        """The autocommit state of the connection."""
        return self._conn.isolation_level is None

    @autocommit.setter
    def autocommit(self, value: bool) -> None:
        with self.lock:
            policy = self._check_open()
            self._check_intrans("autocommit")
            try:
                self._set_driver_autocommit(value)
            except DRIVER_ERRORS as ex:
                policy.transaction_failure("Unable to set autocommit", ex)

    @property
    def in_transaction(self) -> bool:
        """`!True` if a transaction is in progress on the connection."""
        return self._in_transaction()

    def begin(self) -> None:
        """Begin a transaction, disabling autocommit until its end."""
        with self.lock:
            policy = self._check_open()
            if self._autocommit_to_restore is not None or self._in_transaction():
                raise e.ProgrammingError(
                    "can't begin a transaction: transaction already in progress"
                )
            self._begin(policy)

    def commit(self) -> None:
        """Commit any pending transaction to the database."""
        with self.lock:
            policy = self._check_open()
            self._check_no_block("commit")
            self._commit(policy)

    def rollback(self) -> None:
        """Roll back to the start of any pending transaction."""
        with self.lock:
            policy = self._check_open()
            self._check_no_block("rollback")
            self._rollback(policy)

    @contextmanager
    def transaction(
        self,
        savepoint_name: Optional[str] = None,
        force_rollback: bool = False,
        isolation_level: Optional[int] = None,
    ) -> Iterator[Transaction]:
        """
        Start a context block with a new transaction or nested transaction.

        :param savepoint_name: Name of the savepoint used to manage a nested
            transaction. If `!None`, one will be chosen automatically.
        :param force_rollback: Roll back the transaction at the end of the
            block even if there were no error (e.g. to try a no-op process).
        :param isolation_level: Isolation level to use in the block; the
            previous one is restored at the end of the block.
        :rtype: Transaction
        """
        with Transaction(self, savepoint_name, force_rollback, isolation_level) as tx:
            yield tx

    @property
    def isolation_level(self) -> IsolationLevel:
        """
        The isolation level of the transactions on the connection.

        SQLite only supports `~IsolationLevel.READ_UNCOMMITTED` (effective in
        shared cache mode) and `~IsolationLevel.SERIALIZABLE`.
        """
        with self.lock:
            return self._get_isolation_level(self._check_open())

    @isolation_level.setter
    def isolation_level(self, value: int) -> None:
        with self.lock:
            self._set_isolation_level(value, self._check_open())

    # Implementation of the operations above: callers must hold the lock and
    # pass the policy to use, so that a whole operation uses the same one.

    def _check_open(self) -> ExceptionPolicy:
        policy = self._policy
        if self._closed:
            policy.raw_failure("the handle is closed")
        return policy

    def _check_intrans(self, attribute: str) -> None:
        # Raise an exception if we are in a transaction
        if self._autocommit_to_restore is not None or self._in_transaction():
            raise e.ProgrammingError(
                f"can't change {attribute!r} now: transaction in progress"
            )

    def _check_no_block(self, operation: str) -> None:
        if self._savepoints:
            raise e.ProgrammingError(
                f"Explicit {operation}() forbidden within a Transaction"
                " context. (Transaction will be automatically committed on"
                " successful exit from context.)"
            )

    def _in_transaction(self) -> bool:
        if self._closed:
            return False
        return self._conn.in_transaction

    def _create_statement(
        self, query: Query, params: Optional[Params], policy: ExceptionPolicy
    ) -> Tuple[sqlite3.Cursor, StatementContext]:
        ctx = StatementContext(self, query, params, self.attributes)
        try:
            pq = SQLiteQuery()
            pq.convert(query, params)
            ctx._set_rendered(pq.query, pq.params)
            cur = self._conn.cursor()
            if self.prepare and not _re_explain.match(pq.query):
                # Let the database parse the statement without running it.
                try:
                    cur.execute(f"EXPLAIN {pq.query}", pq.params or ())
                except BaseException:
                    cur.close()
                    raise
        except _CREATION_ERRORS as ex:
            policy.unable_to_create_statement(ex, ctx)

        return cur, ctx

    def _execute(
        self,
        cur: sqlite3.Cursor,
        ctx: StatementContext,
        policy: ExceptionPolicy,
    ) -> None:
        assert ctx.rendered_sql is not None
        try:
            cur.execute(ctx.rendered_sql, ctx.rendered_params or ())
        except DRIVER_ERRORS as ex:
            policy.unable_to_execute_statement(ex, ctx)

    def _exec_command(
        self, command: str, reason: str, policy: ExceptionPolicy
    ) -> None:
        try:
            self._conn.execute(command)
        except DRIVER_ERRORS as ex:
            policy.transaction_failure(reason, ex)

    def _set_driver_autocommit(self, value: bool) -> None:
        # Setting the isolation level to None commits a pending transaction.
        self._conn.isolation_level = None if value else "DEFERRED"

    def _begin(self, policy: ExceptionPolicy) -> None:
        self._autocommit_to_restore = self.autocommit
        try:
            self._set_driver_autocommit(False)
        except DRIVER_ERRORS as ex:
            self._autocommit_to_restore = None
            policy.transaction_failure("Unable to disable autocommit", ex)

        try:
            self._conn.execute("BEGIN")
        except DRIVER_ERRORS as ex:
            self._restore_autocommit(policy, quiet=True)
            policy.transaction_failure("Failed to begin transaction", ex)

    def _commit(self, policy: ExceptionPolicy) -> None:
        try:
            self._conn.commit()
        except DRIVER_ERRORS as ex:
            self._restore_autocommit(policy, quiet=True)
            policy.transaction_failure("Failed to commit transaction", ex)

        self._restore_autocommit(policy)

    def _rollback(self, policy: ExceptionPolicy) -> None:
        try:
            self._conn.rollback()
        except DRIVER_ERRORS as ex:
            self._restore_autocommit(policy, quiet=True)
            policy.transaction_failure("Failed to rollback transaction", ex)

        self._restore_autocommit(policy)

    def _restore_autocommit(
        self, policy: ExceptionPolicy, quiet: bool = False
    ) -> None:
        value, self._autocommit_to_restore = self._autocommit_to_restore, None
        if value is None:
            return

        try:
            self._set_driver_autocommit(value)
        except DRIVER_ERRORS as ex:
            if quiet:
                logger.warning(
                    "error ignored restoring autocommit on %s: %s", self, ex
                )
                return
            policy.autocommit_restore_failure(ex)

    def _get_isolation_level(self, policy: ExceptionPolicy) -> IsolationLevel:
        try:
            row = self._conn.execute("PRAGMA read_uncommitted").fetchone()
        except DRIVER_ERRORS as ex:
            policy.unable_to_manipulate_isolation_level(
                "Unable to read the transaction isolation level", ex
            )

        if row and row[0]:
            return IsolationLevel.READ_UNCOMMITTED
        else:
            return IsolationLevel.SERIALIZABLE

    def _set_isolation_level(self, value: int, policy: ExceptionPolicy) -> None:
        try:
            level = IsolationLevel(value)
        except ValueError:
            level = None

        if level is None or level not in _SQLITE_LEVELS:
            policy.unable_to_set_isolation_level(
                value,
                e.NotSupportedError(
                    f"isolation level {value!r} not supported by SQLite"
                ),
            )

        try:
            self._conn.execute(
                f"PRAGMA read_uncommitted = {_SQLITE_LEVELS[level]}"
            )
        except DRIVER_ERRORS as ex:
            policy.unable_to_set_isolation_level(value, ex)
