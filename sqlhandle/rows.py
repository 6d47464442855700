"""
sqlhandle row factories
"""

# Copyright (C) 2026 The Psycopg Team

import re
import sqlite3
import functools
from typing import Any, Callable, Dict, NamedTuple, NoReturn, Sequence, Tuple
from typing import Type, TypeVar
from collections import namedtuple

from typing_extensions import Protocol, TypeAlias

from . import errors as e

T = TypeVar("T")

# Row factories

Row = TypeVar("Row")
Row_co = TypeVar("Row_co", covariant=True)


class RowMaker(Protocol[Row_co]):
    """
    Callable protocol taking a sequence of value and returning an object.

    The sequence of value is what is returned from the driver for a record.
    The return value is the object that your program would like to receive: by
    default (`tuple_row()`) it is a simple tuple, but it may be any type of
    object.

    Typically, `!RowMaker` functions are returned by `RowFactory`.
    """

    def __call__(self, __values: Sequence[Any]) -> Row_co:
        ...


class RowFactory(Protocol[Row]):
    """
    Callable protocol taking a DB-API cursor and returning a `RowMaker`.

    A `!RowFactory` is called when a `Result` is created. This way it can
    inspect the cursor state (for instance the `!description` attribute) and
    help a `!RowMaker` to create a complete object.

    If the factory or the maker raise an exception, it is reported through
    `ExceptionPolicy.result_production_failure()`.
    """

    def __call__(self, __cursor: sqlite3.Cursor) -> RowMaker[Row]:
        ...


TupleRow: TypeAlias = Tuple[Any, ...]
"""
An alias for the type returned by `tuple_row()` (i.e. a tuple of any content).
"""


DictRow: TypeAlias = Dict[str, Any]
"""
An alias for the type returned by `dict_row()`
"""


def tuple_row(cursor: sqlite3.Cursor) -> "RowMaker[TupleRow]":
    """Row factory to represent rows as simple tuples.

    This is the default factory, used when no `!row_factory` is specified.
    """
    return tuple


def dict_row(cursor: sqlite3.Cursor) -> "RowMaker[DictRow]":
    """Row factory to represent rows as dictionaries.

    The dictionary keys are taken from the column names of the returned columns.
    """
    desc = cursor.description
    if desc is None:
        return no_result

    titles = [c[0] for c in desc]

    def dict_row_(values: Sequence[Any]) -> Dict[str, Any]:
        return dict(zip(titles, values))

    return dict_row_


def namedtuple_row(cursor: sqlite3.Cursor) -> "RowMaker[NamedTuple]":
    """Row factory to represent rows as `~collections.namedtuple`.

    The field names are taken from the column names of the returned columns,
    with some mangling to deal with invalid names.
    """
    desc = cursor.description
    if desc is None:
        return no_result

    nt = _make_nt(*(c[0] for c in desc))
    return nt._make


# ascii except alnum and underscore
_re_clean = re.compile(
    "[" + re.escape(" !\"#$%&'()*+,-./:;<=>?@[\\]^`{|}~") + "]"
)


@functools.lru_cache(512)
def _make_nt(*key: str) -> Type[NamedTuple]:
    fields = []
    for s in key:
        s = _re_clean.sub("_", s)
        # Python identifier cannot start with numbers, namedtuple fields
        # cannot start with underscore. So...
        if s[0] == "_" or "0" <= s[0] <= "9":
            s = "f" + s
        fields.append(s)
    return namedtuple("Row", fields)  # type: ignore[return-value]


def class_row(cls: Type[T]) -> RowFactory[T]:
    r"""Generate a row factory to represent rows as instances of the class *cls*.

    The class must support every output column name as a keyword parameter.

    :param cls: The class to return for each row. It must support the fields
        returned by the query as keyword arguments.
    """

    def class_row_(cursor: sqlite3.Cursor) -> "RowMaker[T]":
        desc = cursor.description
        if desc is None:
            return no_result

        names = [d[0] for d in desc]

        def class_row__(values: Sequence[Any]) -> T:
            return cls(**dict(zip(names, values)))  # type: ignore

        return class_row__

    return class_row_


def kwargs_row(func: Callable[..., T]) -> RowFactory[T]:
    """Generate a row factory calling *func* with keyword parameters for every row.

    :param func: The function to call for each row. It must support the fields
        returned by the query as keyword arguments.
    """

    def kwargs_row_(cursor: sqlite3.Cursor) -> "RowMaker[T]":
        desc = cursor.description
        if desc is None:
            return no_result

        names = [d[0] for d in desc]

        def kwargs_row__(values: Sequence[Any]) -> T:
            return func(**dict(zip(names, values)))

        return kwargs_row__

    return kwargs_row_


def no_result(values: Sequence[Any]) -> NoReturn:
    """A `RowMaker` that always fail.

    It can be used as return value for a `RowFactory` called with no result.
    Note that the `!RowFactory` *will* be called with no result, but the
    resulting `!RowMaker` never should.
    """
    raise e.InterfaceError("the statement didn't return a result")
