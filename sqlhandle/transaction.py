"""
Transaction context managers returned by Handle.transaction()
"""

# Copyright (C) 2026 The Psycopg Team

import logging

from types import TracebackType
from typing import Optional, Type, TYPE_CHECKING

from . import errors as e
from ._enums import IsolationLevel

if TYPE_CHECKING:
    from .handle import Handle
    from .policy import ExceptionPolicy

logger = logging.getLogger(__name__)


class Rollback(Exception):
    """
    Exit the current `Transaction` context immediately and rollback any changes
    made within this context.

    If a transaction context is specified in the constructor, rollback
    enclosing transactions contexts up to and including the one specified.
    """

    __module__ = "sqlhandle"

    def __init__(self, transaction: Optional["Transaction"] = None):
        self.transaction = transaction

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}({self.transaction!r})"


class Transaction:
    """
    Returned by `Handle.transaction()` to handle a transaction block.
    """

    __module__ = "sqlhandle"

    def __init__(
        self,
        handle: "Handle",
        savepoint_name: Optional[str] = None,
        force_rollback: bool = False,
        isolation_level: Optional[int] = None,
    ):
        self._handle = handle
        self._savepoint_name = savepoint_name or ""
        self.force_rollback = force_rollback
        self.isolation_level = isolation_level
        self._entered = self._exited = False
        self._outer_transaction = False
        self._prev_level: Optional[IsolationLevel] = None

    @property
    def handle(self) -> "Handle":
        """The handle the object is managing."""
        return self._handle

    @property
    def savepoint_name(self) -> Optional[str]:
        """
        The name of the savepoint; `!None` if handling the main transaction.
        """
        # Yes, it may change on __enter__. No, I don't care, because the
        # un-entered state is outside the public interface.
        return self._savepoint_name

    def __repr__(self) -> str:
        cls = f"{self.__class__.__module__}.{self.__class__.__qualname__}"
        if not self._entered:
            status = "inactive"
        elif not self._exited:
            status = "active"
        else:
            status = "terminated"

        sp = f"{self.savepoint_name!r} " if self.savepoint_name else ""
        return f"<{cls} {sp}({status}) at 0x{id(self):x}>"

    def __enter__(self) -> "Transaction":
        with self._handle.lock:
            self._enter()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> bool:
        with self._handle.lock:
            policy = self._handle._check_open()
            try:
                if not exc_val and not self.force_rollback:
                    self._commit(policy)
                    rv = False
                else:
                    rv = self._rollback(exc_val, policy)
            except BaseException:
                self._restore_isolation_level(policy, quiet=True)
                raise

            self._restore_isolation_level(policy)
            return rv

    def _enter(self) -> None:
        if self._entered:
            raise e.ProgrammingError("transaction blocks can be used only once")
        self._entered = True

        handle = self._handle
        policy = handle._check_open()

        self._outer_transaction = not handle._in_transaction()
        if self._outer_transaction:
            # outer transaction: if no name it's only a begin, else
            # there will be an additional savepoint
            assert not handle._savepoints
        else:
            # inner transaction: it always has a name
            if not self._savepoint_name:
                self._savepoint_name = f"_sh_{len(handle._savepoints) + 1}"

        if self.isolation_level is not None:
            self._prev_level = handle._get_isolation_level(policy)
            handle._set_isolation_level(self.isolation_level, policy)

        try:
            if self._outer_transaction:
                handle._begin(policy)

            if self._savepoint_name:
                handle._exec_command(
                    f"SAVEPOINT {_quote(self._savepoint_name)}",
                    f"Failed to create savepoint {self._savepoint_name!r}",
                    policy,
                )
        except BaseException:
            self._restore_isolation_level(policy, quiet=True)
            raise

        handle._savepoints.append(self._savepoint_name)

    def _commit(self, policy: "ExceptionPolicy") -> None:
        handle = self._handle
        assert handle._savepoints[-1] == self._savepoint_name
        handle._savepoints.pop()
        self._exited = True

        if self._savepoint_name and not self._outer_transaction:
            handle._exec_command(
                f"RELEASE {_quote(self._savepoint_name)}",
                f"Failed to release savepoint {self._savepoint_name!r}",
                policy,
            )

        if self._outer_transaction:
            assert not handle._savepoints
            handle._commit(policy)

    def _rollback(
        self, exc_val: Optional[BaseException], policy: "ExceptionPolicy"
    ) -> bool:
        handle = self._handle
        if isinstance(exc_val, Rollback):
            logger.debug("%s: explicit rollback", handle, exc_info=True)

        assert handle._savepoints[-1] == self._savepoint_name
        handle._savepoints.pop()
        self._exited = True

        if self._savepoint_name and not self._outer_transaction:
            name = _quote(self._savepoint_name)
            handle._exec_command(
                f"ROLLBACK TO {name}",
                f"Failed to rollback to savepoint {self._savepoint_name!r}",
                policy,
            )
            handle._exec_command(
                f"RELEASE {name}",
                f"Failed to release savepoint {self._savepoint_name!r}",
                policy,
            )

        if self._outer_transaction:
            assert not handle._savepoints
            handle._rollback(policy)

        if isinstance(exc_val, Rollback):
            if not exc_val.transaction or exc_val.transaction is self:
                return True  # Swallow the exception

        return False

    def _restore_isolation_level(
        self, policy: "ExceptionPolicy", quiet: bool = False
    ) -> None:
        level, self._prev_level = self._prev_level, None
        if level is None:
            return

        try:
            self._handle._set_isolation_level(level, policy)
        except Exception as ex:
            if not quiet:
                raise
            logger.warning(
                "error ignored restoring isolation level on %s: %s",
                self._handle,
                ex,
            )


def _quote(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'
