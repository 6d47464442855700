"""
sqlhandle database objects
"""

# Copyright (C) 2026 The Psycopg Team

import logging
import sqlite3
import threading
from typing import Any, Callable, Dict, Optional, Union
from functools import partial

from .abc import ConnectionFactory, DRIVER_ERRORS, RV
from .rows import RowFactory
from .handle import Handle
from .policy import ExceptionPolicy, check_policy

logger = logging.getLogger("sqlhandle")


class Database:
    """
    Entry point to a database: create `Handle` objects to talk to it.

    The object holds the configuration shared by the handles it opens, in
    particular the `exception_policy` used to report their failures.
    """

    __module__ = "sqlhandle"

    def __init__(
        self,
        connection_factory: ConnectionFactory,
        *,
        exception_policy: Optional[ExceptionPolicy] = None,
        row_factory: Optional[RowFactory[Any]] = None,
        prepare: bool = True,
        attributes: Optional[Dict[str, Any]] = None,
    ):
        self.connection_factory = connection_factory
        self._policy = check_policy(exception_policy)
        self._policy_lock = threading.Lock()
        self.row_factory = row_factory
        self.prepare = prepare
        self.attributes: Dict[str, Any] = dict(attributes or {})

    @classmethod
    def connect(
        cls,
        database: Union[str, bytes] = ":memory:",
        *,
        exception_policy: Optional[ExceptionPolicy] = None,
        row_factory: Optional[RowFactory[Any]] = None,
        prepare: bool = True,
        attributes: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> "Database":
        """
        Return a `Database` opening SQLite connections to *database*.

        Further keyword arguments are passed to `sqlite3.connect()`.
        Note that every handle on an ``:memory:`` database sees a different
        database.
        """
        # Transactions are managed by the handles.
        kwargs["isolation_level"] = None
        return cls(
            partial(sqlite3.connect, database, **kwargs),
            exception_policy=exception_policy,
            row_factory=row_factory,
            prepare=prepare,
            attributes=attributes,
        )

    def __repr__(self) -> str:
        cls = f"{self.__class__.__module__}.{self.__class__.__qualname__}"
        return f"<{cls} at 0x{id(self):x}>"

    @property
    def exception_policy(self) -> ExceptionPolicy:
        """
        The `ExceptionPolicy` used by the handles opened from now on.

        Setting it replaces the previous policy; `!None` restores a default
        one. Handles already open keep the policy they were opened with.
        """
        return self._policy

    @exception_policy.setter
    def exception_policy(self, policy: Optional[ExceptionPolicy]) -> None:
        policy = check_policy(policy)
        with self._policy_lock:
            self._policy = policy
        logger.debug("%s: exception policy set to %s", self, policy)

    def define(self, name: str, value: Any) -> "Database":
        """
        Define an attribute, made available to the statements contexts of the
        handles opened from now on.
        """
        self.attributes[name] = value
        return self

    def open(self) -> Handle:
        """Open a new `Handle` to the database."""
        policy = self._policy
        try:
            conn = self.connection_factory()
        except DRIVER_ERRORS as ex:
            policy.connection_failure(ex)

        # Transactions are managed by the handle.
        try:
            conn.isolation_level = None
        except DRIVER_ERRORS as ex:
            conn.close()
            policy.connection_failure(ex)

        return Handle(
            conn,
            exception_policy=policy,
            row_factory=self.row_factory,
            prepare=self.prepare,
            attributes=self.attributes,
            database=self,
        )

    def with_handle(self, callback: Callable[[Handle], RV]) -> RV:
        """
        Open a handle, pass it to *callback* and return its result.

        The handle is closed on exit, even in case of error.
        """
        with self.open() as handle:
            return callback(handle)

    def in_transaction(
        self,
        callback: Callable[[Handle], RV],
        isolation_level: Optional[int] = None,
    ) -> RV:
        """
        Like `with_handle()`, but calling *callback* inside a transaction.

        The transaction is committed if *callback* returns normally, rolled
        back if it raises.
        """
        with self.open() as handle:
            with handle.transaction(isolation_level=isolation_level):
                return callback(handle)
