"""
Utility module to manipulate queries
"""

# Copyright (C) 2026 The Psycopg Team

import re
from typing import Any, List, Mapping, Match, NamedTuple, Optional
from typing import Sequence, Tuple, Union
from functools import lru_cache

from . import errors as e
from .abc import Query, Params


class QueryPart(NamedTuple):
    pre: str
    item: Union[int, str]


class SQLiteQuery:
    """
    Helper to convert a Python query and parameters into SQLite format.
    """

    __slots__ = ("query", "params", "_parts", "_order")

    def __init__(self) -> None:
        self.query = ""
        self.params: Optional[Sequence[Any]] = None
        self._parts: List[QueryPart] = []
        self._order: Optional[List[str]] = None

    def convert(self, query: Query, vars: Optional[Params]) -> None:
        """
        Set up the query and parameters to convert.

        The results of this function can be obtained accessing the object
        attributes (`query`, `params`).

        If `!vars` is `!None` the query is passed to the driver untouched: the
        ``%`` characters don't need to be escaped.
        """
        if vars is not None:
            self.query, self._order, self._parts = _query2sqlite(query)
        else:
            self.query = query
            self._order = None
            self._parts = []

        self.dump(vars)

    def dump(self, vars: Optional[Params]) -> None:
        """
        Process a new set of variables on the query processed by `convert()`.

        This method updates `params`.
        """
        if vars is not None:
            self.params = _validate_and_reorder_params(
                self._parts, vars, self._order
            )
        else:
            self.params = None


@lru_cache()
def _query2sqlite(query: str) -> Tuple[str, Optional[List[str]], List[QueryPart]]:
    """
    Convert Python query and params into something SQLite understands.

    - Convert Python placeholders (``%s``, ``%(name)s``) into SQLite
      positional placeholders (``?``)
    - return ``query`` (str), ``order`` (sequence of names used in the query,
      in the position they appear, repeated if a name is used more than once)
      ``parts`` (splits of queries and placeholders).
    """
    parts = _split_query(query)
    order: Optional[List[str]] = None
    chunks: List[str] = []

    if isinstance(parts[0].item, int):
        for part in parts[:-1]:
            assert isinstance(part.item, int)
            chunks.append(part.pre)
            chunks.append("?")

    elif isinstance(parts[0].item, str):
        order = []
        for part in parts[:-1]:
            assert isinstance(part.item, str)
            chunks.append(part.pre)
            chunks.append("?")
            order.append(part.item)

    # last part
    chunks.append(parts[-1].pre)

    return "".join(chunks), order, parts


def _validate_and_reorder_params(
    parts: List[QueryPart], vars: Params, order: Optional[List[str]]
) -> Sequence[Any]:
    """
    Verify the compatibility between a query and a set of params.
    """
    # Try concrete types, then abstract types
    t = type(vars)
    if t is list or t is tuple:
        sequence = True
    elif t is dict:
        sequence = False
    elif isinstance(vars, Sequence) and not isinstance(vars, (bytes, str)):
        sequence = True
    elif isinstance(vars, Mapping):
        sequence = False
    else:
        raise TypeError(
            "query parameters should be a sequence or a mapping,"
            f" got {type(vars).__name__}"
        )

    if sequence:
        if len(vars) != len(parts) - 1:
            raise e.ProgrammingError(
                f"the query has {len(parts) - 1} placeholders but"
                f" {len(vars)} parameters were passed"
            )
        if vars and not isinstance(parts[0].item, int):
            raise TypeError("named placeholders require a mapping of parameters")
        return vars  # type: ignore[return-value]

    else:
        if vars and len(parts) > 1 and not isinstance(parts[0].item, str):
            raise TypeError(
                "positional placeholders (%s) require a sequence of parameters"
            )
        try:
            return [vars[item] for item in order or ()]  # type: ignore[call-overload]
        except KeyError:
            raise e.ProgrammingError(
                "query parameter missing:"
                f" {', '.join(sorted(i for i in order or () if i not in vars))}"
            )


_re_placeholder = re.compile(
    r"""(?x)
        %                       # a literal %
        (?:
            (?:
                \( ([^)]+) \)   # or a name in (braces)
                .               # followed by a format
            )
            |
            (?:.)               # or any char, really
        )
        """
)


def _split_query(query: str) -> List[QueryPart]:
    parts: List[Tuple[str, Optional[Match[str]]]] = []
    cur = 0

    # pairs [(fragment, match], with the last match None
    m = None
    for m in _re_placeholder.finditer(query):
        pre = query[cur : m.span(0)[0]]
        parts.append((pre, m))
        cur = m.span(0)[1]
    if m:
        parts.append((query[cur:], None))
    else:
        parts.append((query, None))

    rv = []

    # drop the "%%", validate
    i = 0
    phtype = None
    while i < len(parts):
        pre, m = parts[i]
        if m is None:
            # last part
            rv.append(QueryPart(pre, 0))
            break

        ph = m.group(0)
        if ph == "%%":
            # unescape '%%' to '%', then merge the parts
            pre1, m1 = parts[i + 1]
            parts[i + 1] = (pre + "%" + pre1, m1)
            del parts[i]
            continue

        if ph == "%(":
            raise e.ProgrammingError(
                "incomplete placeholder:"
                f" '{query[m.span(0)[0]:].split()[0]}'"
            )
        elif ph == "% ":
            # explicit messasge for a typical error
            raise e.ProgrammingError(
                "incomplete placeholder: '%'; if you want to use '%' as an"
                " operator you can double it up, i.e. use '%%'"
            )
        elif ph[-1:] != "s":
            raise e.ProgrammingError(
                f"only '%s' is allowed as placeholder, got '{m.group(0)}'"
            )

        # Index or name
        item: Union[int, str]
        item = m.group(1) if m.group(1) else i

        if not phtype:
            phtype = type(item)
        elif phtype is not type(item):
            raise e.ProgrammingError(
                "positional and named placeholders cannot be mixed"
            )

        rv.append(QueryPart(pre, item))
        i += 1

    return rv
