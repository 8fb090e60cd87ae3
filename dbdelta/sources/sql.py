# Copyright (c) QuantCo 2022-2024
# SPDX-License-Identifier: LicenseRef-QuantCo


from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

import sqlalchemy as sa

from dbdelta.conversion import Conversion
from dbdelta.errors import DatabaseError, InvalidUsage
from dbdelta.rows import Row, RowSet
from dbdelta.sources.source import Column

logger = logging.getLogger(__name__)

Bind = sa.Engine | sa.Connection


@contextmanager
def connect(bind: Bind, write: bool = False) -> Iterator[sa.Connection]:
    """Connection for one operation.

    Engines are used through a short-lived connection (committed if :code:`write`),
    connections are used as they are and left open.
    """
    if isinstance(bind, sa.Connection):
        yield bind
    elif write:
        with bind.begin() as conn:
            yield conn
    else:
        with bind.connect() as conn:
            yield conn


def fetch(bind: Bind, statement: sa.Executable, name: str) -> RowSet:
    """Execute a read and collect all result rows.

    Raises :class:`DatabaseError`:
        If SQLAlchemy reports an error, which is kept as cause.
    """
    logger.debug("Querying %s", name)
    try:
        with connect(bind) as conn:
            return RowSet(Row(*values) for values in conn.execute(statement))
    except sa.exc.SQLAlchemyError as e:
        raise DatabaseError(f"Query on {name} failed: {e}") from e


def text_clause(clause: str, params: dict[str, Any]) -> sa.TextClause:
    """SQL snippet with bound named parameters."""
    if not clause:
        raise InvalidUsage("Empty SQL clause.")
    try:
        return sa.text(clause).bindparams(**params)
    except sa.exc.ArgumentError as e:
        raise InvalidUsage(f"Invalid parameters for '{clause}': {e}") from e


class Table:
    """Database table with caller-supplied column names.

    Implements :class:`SnapshotProvider` by reading all rows of the table.

    Arguments:
        name :class:`str`:
            Name of the table.
        columns :class:`Sequence[str]`:
            Names of the observed columns, in order. Not inferred from the database.
        bind :class:`sa.Engine` | :class:`sa.Connection`:
            Where to read from, owned by the caller.
        schema :class:`str` | :code:`None`:
            Optional schema of the table.
        conversion :class:`Conversion` | :code:`None`:
            Mapping to domain objects, makes observers of this table typed.
    """

    def __init__(
        self,
        name: str,
        columns: Sequence[str],
        bind: Bind,
        schema: str | None = None,
        conversion: Conversion[Any] | None = None,
    ):
        if not name:
            raise InvalidUsage("Table name is required.")
        if not columns:
            raise InvalidUsage("At least one column is required.")
        if bind is None:
            raise InvalidUsage("Table is not bound to a database.")
        self._name = name
        self._column_names = tuple(columns)
        self.bind = bind
        self.schema = schema
        self.conversion = conversion
        self.sa_table = sa.table(
            name, *[sa.column(c) for c in self._column_names], schema=schema
        )

    @property
    def name(self) -> str:
        return f"{self.schema}.{self._name}" if self.schema else self._name

    @property
    def column_names(self) -> tuple[str, ...]:
        return self._column_names

    def columns(self) -> tuple[Column, ...]:
        return tuple(Column(name) for name in self._column_names)

    def statement(self) -> sa.Select[Any]:
        return sa.select(*self.sa_table.c)

    def query(self) -> RowSet:
        return fetch(self.bind, self.statement(), self.name)

    def __repr__(self) -> str:
        return f"Table({self.name!r}, {list(self._column_names)!r})"


class Query:
    """Query on a :class:`Table` with optional WHERE, GROUP BY and HAVING clauses.

    Clauses are SQL snippets; named parameters (:code:`:param`) are bound from
    keyword arguments. Implements :class:`SnapshotProvider`.
    """

    def __init__(self, table: Table):
        if table is None:
            raise InvalidUsage("Null table.")
        self.table = table
        self.conversion = table.conversion
        self.where_clause: str | None = None
        self.group_by_clause: tuple[str, ...] = ()
        self.having_clause: str | None = None
        self._selected: tuple[str, ...] = ()
        self._where: sa.TextClause | None = None
        self._having: sa.TextClause | None = None

    @property
    def name(self) -> str:
        return self.table.name

    def select(self, *expressions: str) -> Query:
        """Select SQL expressions instead of all table columns."""
        if not expressions:
            raise InvalidUsage("No expressions to select.")
        self._selected = expressions
        return self

    def where(self, clause: str, **params: Any) -> Query:
        self._where = text_clause(clause, params)
        self.where_clause = clause
        return self

    def group_by(self, *columns: str) -> Query:
        if not columns:
            raise InvalidUsage("No columns to group by.")
        self.group_by_clause = columns
        return self

    def having(self, clause: str, **params: Any) -> Query:
        self._having = text_clause(clause, params)
        self.having_clause = clause
        return self

    def columns(self) -> tuple[Column, ...]:
        if self._selected:
            return tuple(Column(expr) for expr in self._selected)
        return self.table.columns()

    def statement(self) -> sa.Select[Any]:
        if self._selected:
            selected = [sa.literal_column(expr) for expr in self._selected]
        else:
            selected = list(self.table.sa_table.c)
        stmt = sa.select(*selected).select_from(self.table.sa_table)
        if self._where is not None:
            stmt = stmt.where(self._where)
        if self.group_by_clause:
            stmt = stmt.group_by(*[sa.literal_column(c) for c in self.group_by_clause])
        if self._having is not None:
            stmt = stmt.having(self._having)
        return stmt

    def query(self) -> RowSet:
        return fetch(self.table.bind, self.statement(), self.name)

    def __repr__(self) -> str:
        return f"Query({self.name!r}, where={self.where_clause!r})"


class SqlQuery:
    """Arbitrary SQL SELECT statement with caller-supplied column names.

    Implements :class:`SnapshotProvider`.
    """

    def __init__(
        self,
        bind: Bind,
        sql: str,
        columns: Sequence[str],
        name: str = "",
        conversion: Conversion[Any] | None = None,
        **params: Any,
    ):
        if bind is None:
            raise InvalidUsage("Query is not bound to a database.")
        if not columns:
            raise InvalidUsage("At least one column is required.")
        self.bind = bind
        self.sql = sql
        self.conversion = conversion
        self._name = name or sql
        self._column_names = tuple(columns)
        self._statement = text_clause(sql, params)

    @property
    def name(self) -> str:
        return self._name

    def columns(self) -> tuple[Column, ...]:
        return tuple(Column(name) for name in self._column_names)

    def query(self) -> RowSet:
        return fetch(self.bind, self._statement, self.name)

    def __repr__(self) -> str:
        return f"SqlQuery({self.sql!r})"
