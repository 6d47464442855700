"""
Classification of the failures happening in the execution pipeline.
"""

# Copyright (C) 2026 The Psycopg Team

import logging
import functools
from typing import Any, Callable, NoReturn, Optional, TYPE_CHECKING
from typing import final

from . import errors as e
from .errors import ErrorKind

if TYPE_CHECKING:
    from ._context import StatementContext

logger = logging.getLogger("sqlhandle")


class ExceptionPolicy:
    """
    Convert the failures detected by sqlhandle into the exceptions raised.

    Every method handles a category of failure (see `ErrorKind`) and always
    raises: none of them ever returns.

    Subclass it to raise database-specific exceptions or to build richer
    messages, for instance parsing the text of the driver exception received
    as *cause*. Install the subclass on a `Database` or on a `Handle` using
    their `!exception_policy` attribute.

    Only the "full" methods should be overridden: the convenience methods
    (marked `!final`) supply a default reason and call the full ones, so
    overriding the latter changes the behaviour of every caller.

    The object shouldn't keep per-call state: the same instance is shared by
    every handle of a database and may be used by several threads at once.

    An override must raise. If it returns an exception, that exception is
    raised in its place; if it returns anything else, `!TypeError` is raised.
    """

    __module__ = "sqlhandle"

    def __init_subclass__(cls, **kwargs: Any):
        super().__init_subclass__(**kwargs)
        for name in _FULL_FORMS:
            if name in cls.__dict__:
                setattr(cls, name, _must_raise(name, cls.__dict__[name]))

    def statement_creation_failure(
        self,
        reason: str,
        cause: Optional[BaseException],
        context: Optional["StatementContext"],
    ) -> NoReturn:
        """It was not possible to create a statement from a query."""
        self._raise(e.StatementCreationError(reason, cause, context))

    @final
    def unable_to_create_statement(
        self,
        cause: Optional[BaseException],
        context: Optional["StatementContext"] = None,
    ) -> NoReturn:
        self.statement_creation_failure(
            e.StatementCreationError.default_message, cause, context
        )

    def statement_execution_failure(
        self,
        reason: str,
        cause: Optional[BaseException],
        context: Optional["StatementContext"],
    ) -> NoReturn:
        """A statement was created but its execution failed."""
        self._raise(e.StatementExecutionError(reason, cause, context))

    @final
    def unable_to_execute_statement(
        self,
        cause: Optional[BaseException],
        context: Optional["StatementContext"],
    ) -> NoReturn:
        self.statement_execution_failure(
            e.StatementExecutionError.default_message, cause, context
        )

    def isolation_level_failure(
        self,
        level: Optional[int],
        reason: Optional[str],
        cause: Optional[BaseException],
    ) -> NoReturn:
        """
        Setting or reading the transaction isolation level failed.

        The error raised carries the *level* if specified, otherwise the
        *reason*, otherwise none of them. The level takes precedence if both
        are specified.
        """
        if level is not None:
            self._raise(e.IsolationLevelError(level=level, cause=cause))
        elif reason is not None:
            self._raise(e.IsolationLevelError(reason=reason, cause=cause))
        else:
            self._raise(e.IsolationLevelError(cause=cause))

    @final
    def unable_to_set_isolation_level(
        self, level: Optional[int], cause: Optional[BaseException]
    ) -> NoReturn:
        self.isolation_level_failure(level, None, cause)

    @final
    def unable_to_manipulate_isolation_level(
        self, reason: Optional[str], cause: Optional[BaseException]
    ) -> NoReturn:
        self.isolation_level_failure(None, reason, cause)

    def autocommit_restore_failure(
        self, cause: Optional[BaseException]
    ) -> NoReturn:
        """The autocommit state couldn't be restored after a transaction."""
        self._raise(e.AutocommitRestoreError(cause=cause))

    def connection_failure(self, cause: Optional[BaseException]) -> NoReturn:
        """It was not possible to obtain a connection."""
        self._raise(e.ConnectionFailure(cause=cause))

    def transaction_failure(
        self,
        reason: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> NoReturn:
        """Beginning, committing or rolling back a transaction failed."""
        self._raise(e.TransactionError(reason, cause))

    def close_failure(
        self, reason: str, cause: Optional[BaseException]
    ) -> NoReturn:
        """Closing a resource failed."""
        self._raise(e.CloseError(reason, cause))

    def no_results_failure(
        self,
        reason: str,
        cause: Optional[BaseException],
        context: Optional["StatementContext"],
    ) -> NoReturn:
        """A result was required but none was produced."""
        self._raise(e.NoResultsError(reason, cause, context))

    def result_set_failure(
        self,
        reason: str,
        cause: Optional[BaseException],
        context: Optional["StatementContext"],
    ) -> NoReturn:
        """Consuming the result set failed."""
        self._raise(e.ResultSetError(reason, cause, context))

    def result_production_failure(
        self,
        reason: str,
        cause: Optional[BaseException],
        context: Optional["StatementContext"],
    ) -> NoReturn:
        """Building the object for a row failed."""
        self._raise(e.ResultProductionError(reason, cause, context))

    @final
    def unable_to_produce_result(
        self,
        cause: Optional[BaseException],
        context: Optional["StatementContext"],
    ) -> NoReturn:
        self.result_production_failure(
            e.ResultProductionError.default_message, cause, context
        )

    def raw_failure(
        self,
        reason: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> NoReturn:
        """
        Raise a low level failure as it is.

        At least one of *reason* and *cause* must be specified. If only the
        cause is specified the message is derived from it.
        """
        if reason is None and cause is None:
            raise ValueError("at least one of reason and cause is required")
        self._raise(e.RawError(reason or "", cause))

    @final
    def fail(
        self,
        kind: ErrorKind,
        cause: Optional[BaseException],
        context: Optional["StatementContext"] = None,
    ) -> NoReturn:
        """
        Raise a failure of category *kind* with its default message.

        The method delegates to the method handling *kind*, so its overrides
        are respected.
        """
        msg = e.lookup(kind).default_message
        if kind is ErrorKind.STATEMENT_CREATION:
            self.statement_creation_failure(msg, cause, context)
        elif kind is ErrorKind.STATEMENT_EXECUTION:
            self.statement_execution_failure(msg, cause, context)
        elif kind is ErrorKind.TRANSACTION_ISOLATION:
            self.isolation_level_failure(None, None, cause)
        elif kind is ErrorKind.AUTOCOMMIT_RESTORE:
            self.autocommit_restore_failure(cause)
        elif kind is ErrorKind.CONNECTION:
            self.connection_failure(cause)
        elif kind is ErrorKind.TRANSACTION:
            self.transaction_failure(msg, cause)
        elif kind is ErrorKind.CLOSE:
            self.close_failure(msg, cause)
        elif kind is ErrorKind.NO_RESULTS:
            self.no_results_failure(msg, cause, context)
        elif kind is ErrorKind.RESULT_SET:
            self.result_set_failure(msg, cause, context)
        elif kind is ErrorKind.RESULT_PRODUCTION:
            self.result_production_failure(msg, cause, context)
        elif kind is ErrorKind.RAW:
            self.raw_failure(None if cause is not None else msg, cause)
        else:
            raise TypeError(f"unknown error kind: {kind!r}")

    def _raise(self, exc: e.PolicyError) -> NoReturn:
        logger.debug("%s: raising %s: %s", self, exc.kind.name, exc)
        raise exc

    def __repr__(self) -> str:
        cls = f"{self.__class__.__module__}.{self.__class__.__qualname__}"
        return f"<{cls} at 0x{id(self):x}>"


# Methods subclasses may override, which must never return
_FULL_FORMS = (
    "statement_creation_failure",
    "statement_execution_failure",
    "isolation_level_failure",
    "autocommit_restore_failure",
    "connection_failure",
    "transaction_failure",
    "close_failure",
    "no_results_failure",
    "result_set_failure",
    "result_production_failure",
    "raw_failure",
)


def _must_raise(name: str, method: Callable[..., Any]) -> Callable[..., NoReturn]:
    @functools.wraps(method)
    def must_raise_(self: ExceptionPolicy, *args: Any, **kwargs: Any) -> NoReturn:
        rv = method(self, *args, **kwargs)
        if isinstance(rv, BaseException):
            raise rv
        raise TypeError(
            f"{type(self).__name__}.{name}() returned instead of raising"
        )

    return must_raise_


def check_policy(policy: Optional[ExceptionPolicy]) -> ExceptionPolicy:
    """
    Return the policy to install in place of *policy*.

    `!None` means a new default `ExceptionPolicy`.
    """
    if policy is None:
        return ExceptionPolicy()
    if not isinstance(policy, ExceptionPolicy):
        raise TypeError(
            "exception_policy should be an ExceptionPolicy,"
            f" got {type(policy).__name__}"
        )
    return policy
