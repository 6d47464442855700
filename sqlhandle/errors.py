"""
sqlhandle exceptions

DBAPI-style exceptions and the errors raised by an `ExceptionPolicy` are
defined in the following hierarchy::

    Exceptions
    |__Warning
    |__Error
       |__InterfaceError
       |__ProgrammingError
       |__NotSupportedError
       |__PolicyError
          |__StatementCreationError
          |__StatementExecutionError
          |__IsolationLevelError
          |__AutocommitRestoreError
          |__ConnectionFailure
          |__TransactionError
          |__CloseError
          |__NoResultsError
          |__ResultSetError
          |__ResultProductionError
          |__RawError

Every `PolicyError` subclass is associated to exactly one `ErrorKind`.
"""

# Copyright (C) 2026 The Psycopg Team

from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Type, Union
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ._context import StatementContext


class ErrorKind(Enum):
    """
    The category of a failure classified by an `ExceptionPolicy`.
    """

    STATEMENT_CREATION = "statement_creation"
    STATEMENT_EXECUTION = "statement_execution"
    TRANSACTION_ISOLATION = "transaction_isolation"
    AUTOCOMMIT_RESTORE = "autocommit_restore"
    CONNECTION = "connection"
    TRANSACTION = "transaction"
    CLOSE = "close"
    NO_RESULTS = "no_results"
    RESULT_SET = "result_set"
    RESULT_PRODUCTION = "result_production"
    RAW = "raw"

    __module__ = "sqlhandle"


class Warning(Exception):
    """
    Exception raised for important warnings.

    Defined for DBAPI compatibility, but never raised by ``sqlhandle``.
    """

    __module__ = "sqlhandle"


class Error(Exception):
    """
    Base exception for all the errors sqlhandle will raise.

    You can use this to catch all errors with one single `!except` statement.
    """

    __module__ = "sqlhandle"


class InterfaceError(Error):
    """
    An error related to the database interface rather than the database itself.
    """

    __module__ = "sqlhandle"


class ProgrammingError(Error):
    """
    Exception raised for programming errors.

    Examples may be wrong placeholders in a query, wrong number of parameters
    specified, transaction blocks used in the wrong way.
    """

    __module__ = "sqlhandle"


class NotSupportedError(Error):
    """
    A method or database feature was used which is not supported by the database.
    """

    __module__ = "sqlhandle"


class PolicyError(Error):
    """
    Base class of the errors raised by an `~sqlhandle.ExceptionPolicy`.

    Every subclass is tagged with one `ErrorKind`, available as the read-only
    `kind` attribute. The underlying failure, if any, is available as `cause`
    and is also chained as the exception ``__cause__``.

    This exception is guaranteed to be picklable; the statement context is
    not preserved by pickling.
    """

    __module__ = "sqlhandle"

    _kind: Optional[ErrorKind] = None
    default_message = ""

    def __init__(
        self,
        message: Optional[str] = None,
        cause: Optional[BaseException] = None,
        context: Optional["StatementContext"] = None,
    ):
        if self._kind is None:
            raise TypeError(
                f"{type(self).__name__} has no error kind: use one of its"
                " subclasses or errors.lookup()"
            )
        if not message:
            message = self._derive_message(cause)
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.context = context
        if cause is not None:
            self.__cause__ = cause

    @property
    def kind(self) -> ErrorKind:
        """The `ErrorKind` the error was classified as."""
        assert self._kind is not None
        return self._kind

    @property
    def statement(self) -> Optional[str]:
        """The text of the statement being processed, if known."""
        return self.context.sql if self.context is not None else None

    def _derive_message(self, cause: Optional[BaseException]) -> str:
        return self.default_message

    def __reduce__(self) -> Union[str, Tuple[Any, ...]]:
        res = super().__reduce__()
        if isinstance(res, tuple) and len(res) >= 3:
            # The state is the instance __dict__: don't touch it in place.
            state = dict(res[2])
            state["context"] = None
            res = res[:2] + (state,) + res[3:]

        return res


def errorkind(
    kind: ErrorKind,
) -> Callable[[Type[PolicyError]], Type[PolicyError]]:
    """
    Decorator to associate an exception class to an error kind.
    """

    def errorkind_(cls: Type[PolicyError]) -> Type[PolicyError]:
        if kind in _kinds:
            raise TypeError(f"{kind} already registered to {_kinds[kind]}")
        _kinds[kind] = cls
        cls._kind = kind
        return cls

    return errorkind_


_kinds: Dict[ErrorKind, Type[PolicyError]] = {}


def lookup(kind: Union[ErrorKind, str]) -> Type[PolicyError]:
    """Lookup an `ErrorKind` or its name and return its exception class.

    Raise `!KeyError` if the kind is not found.
    """
    if not isinstance(kind, ErrorKind):
        try:
            kind = ErrorKind[kind.upper()]
        except KeyError:
            raise KeyError(kind) from None

    return _kinds[kind]


@errorkind(ErrorKind.STATEMENT_CREATION)
class StatementCreationError(PolicyError):
    """It was not possible to create an executable statement from a query."""

    __module__ = "sqlhandle"
    default_message = "Unable to create statement."


@errorkind(ErrorKind.STATEMENT_EXECUTION)
class StatementExecutionError(PolicyError):
    """The statement was created but its execution failed."""

    __module__ = "sqlhandle"
    default_message = "Unable to execute statement."


@errorkind(ErrorKind.TRANSACTION_ISOLATION)
class IsolationLevelError(PolicyError):
    """
    Setting or reading the transaction isolation level failed.

    The error carries either the `level` requested or a `reason`, or none of
    them, never both. They are keyword-only arguments: the positional ones are
    the same as every other `PolicyError`. If no *message* is specified it is
    derived from *level* or *reason*.
    """

    __module__ = "sqlhandle"
    default_message = (
        "Unable to manipulate transaction isolation level (unspecified)."
    )

    def __init__(
        self,
        message: Optional[str] = None,
        cause: Optional[BaseException] = None,
        context: Optional["StatementContext"] = None,
        *,
        level: Optional[int] = None,
        reason: Optional[str] = None,
    ):
        if level is not None and reason is not None:
            raise TypeError("can't specify both level and reason")

        if not message:
            if level is not None:
                message = f"Unable to set isolation level to {level}"
            else:
                message = reason

        super().__init__(message, cause, context)
        self.level = level
        self.reason = reason


@errorkind(ErrorKind.AUTOCOMMIT_RESTORE)
class AutocommitRestoreError(PolicyError):
    """Restoring the autocommit state of a connection after a transaction failed."""

    __module__ = "sqlhandle"
    default_message = "Unable to restore the connection autocommit state."


@errorkind(ErrorKind.CONNECTION)
class ConnectionFailure(PolicyError):
    """It was not possible to obtain or use a database connection."""

    __module__ = "sqlhandle"
    default_message = "Unable to acquire a connection."


@errorkind(ErrorKind.TRANSACTION)
class TransactionError(PolicyError):
    """A failure in the lifecycle of a transaction."""

    __module__ = "sqlhandle"
    default_message = "Transaction failed."


@errorkind(ErrorKind.CLOSE)
class CloseError(PolicyError):
    """Releasing a resource (handle, cursor) failed."""

    __module__ = "sqlhandle"
    default_message = "Unable to close resource."


@errorkind(ErrorKind.NO_RESULTS)
class NoResultsError(PolicyError):
    """A result was required but the statement didn't produce any."""

    __module__ = "sqlhandle"
    default_message = "No results."


@errorkind(ErrorKind.RESULT_SET)
class ResultSetError(PolicyError):
    """Consuming the result set of a statement failed."""

    __module__ = "sqlhandle"
    default_message = "Unable to consume the result set."


@errorkind(ErrorKind.RESULT_PRODUCTION)
class ResultProductionError(PolicyError):
    """Turning a fetched row into the requested object failed."""

    __module__ = "sqlhandle"
    default_message = "Unable to produce result."


@errorkind(ErrorKind.RAW)
class RawError(PolicyError):
    """
    A low level failure re-raised as it is.

    If no message is specified, the message is the one of the cause.
    """

    __module__ = "sqlhandle"

    def _derive_message(self, cause: Optional[BaseException]) -> str:
        return str(cause) if cause is not None else ""
