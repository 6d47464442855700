"""
Diagnostic information about the statement being processed.
"""

# Copyright (C) 2026 The Psycopg Team

from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence, TYPE_CHECKING

from .abc import Params, Query

if TYPE_CHECKING:
    from .handle import Handle


class StatementContext:
    """
    Information about a statement, passed to the `ExceptionPolicy` on failure.

    The object is created by the `Handle` executing the statement and should be
    considered read-only.
    """

    __module__ = "sqlhandle"

    __slots__ = ("_handle", "_sql", "_params", "_attributes", "_rendered_sql",
                 "_rendered_params")

    def __init__(
        self,
        handle: Optional["Handle"],
        sql: Query,
        params: Optional[Params] = None,
        attributes: Optional[Mapping[str, Any]] = None,
    ):
        self._handle = handle
        self._sql = sql
        self._params = params
        self._attributes = MappingProxyType(dict(attributes or {}))
        self._rendered_sql: Optional[str] = None
        self._rendered_params: Optional[Sequence[Any]] = None

    def __repr__(self) -> str:
        cls = f"{self.__class__.__module__}.{self.__class__.__qualname__}"
        return f"<{cls} {self._sql!r} at 0x{id(self):x}>"

    def __str__(self) -> str:
        parts = [f"statement: {self._sql!r}"]
        if self._rendered_sql is not None and self._rendered_sql != self._sql:
            parts.append(f"rendered: {self._rendered_sql!r}")
        if self._params is not None:
            parts.append(f"params: {self._params!r}")
        return ", ".join(parts)

    @property
    def handle(self) -> Optional["Handle"]:
        """The handle executing the statement."""
        return self._handle

    @property
    def sql(self) -> Query:
        """The statement as passed by the user."""
        return self._sql

    @property
    def params(self) -> Optional[Params]:
        """The parameters as passed by the user."""
        return self._params

    @property
    def rendered_sql(self) -> Optional[str]:
        """
        The statement sent to the driver, `!None` if the conversion failed.
        """
        return self._rendered_sql

    @property
    def rendered_params(self) -> Optional[Sequence[Any]]:
        """The parameters sent to the driver, in placeholders order."""
        return self._rendered_params

    @property
    def attributes(self) -> Mapping[str, Any]:
        """Read-only view of the attributes defined on the handle."""
        return self._attributes

    def _set_rendered(self, sql: str, params: Optional[Sequence[Any]]) -> None:
        # Only called by the handle once the query is converted
        self._rendered_sql = sql
        self._rendered_params = params
