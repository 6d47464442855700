"""
sqlhandle -- database handles with pluggable error classification
"""

# Copyright (C) 2026 The Psycopg Team

import logging

from . import errors
from . import rows
from .batch import Batch
from .errors import Warning, Error, InterfaceError, ProgrammingError
from .errors import NotSupportedError, PolicyError, ErrorKind
from .errors import StatementCreationError, StatementExecutionError
from .errors import IsolationLevelError, AutocommitRestoreError
from .errors import ConnectionFailure, TransactionError, CloseError
from .errors import NoResultsError, ResultSetError, ResultProductionError
from .errors import RawError
from .handle import Handle
from .policy import ExceptionPolicy
from .result import Result
from ._enums import IsolationLevel
from ._context import StatementContext
from .database import Database
from .transaction import Rollback, Transaction

from .version import __version__

# Set the logger to a quiet default, can be enabled if needed
logger = logging.getLogger("sqlhandle")
if logger.level == logging.NOTSET:
    logger.setLevel(logging.WARNING)

connect = Database.connect

# Note: defining the exported methods helps both Sphynx in documenting that
# this is the canonical place to obtain them and should be used by MyPy too,
# so that function signatures are consistent with the documentation.
__all__ = [
    "__version__",
    "Batch",
    "Database",
    "ErrorKind",
    "ExceptionPolicy",
    "Handle",
    "IsolationLevel",
    "Result",
    "Rollback",
    "StatementContext",
    "Transaction",
    "connect",
    # Exceptions
    "Warning",
    "Error",
    "InterfaceError",
    "ProgrammingError",
    "NotSupportedError",
    "PolicyError",
    "StatementCreationError",
    "StatementExecutionError",
    "IsolationLevelError",
    "AutocommitRestoreError",
    "ConnectionFailure",
    "TransactionError",
    "CloseError",
    "NoResultsError",
    "ResultSetError",
    "ResultProductionError",
    "RawError",
]
