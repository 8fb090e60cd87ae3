# Copyright (c) QuantCo 2022-2024
# SPDX-License-Identifier: LicenseRef-QuantCo


from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, TypeVar, overload

import sqlalchemy as sa

from dbdelta.config import DEFAULT_CONFIG, DeltaConfig
from dbdelta.conversion import Conversion
from dbdelta.dataset import DataSet, as_rows
from dbdelta.deltas import Delta, TypedDelta
from dbdelta.errors import DatabaseError, InvalidUsage
from dbdelta.log import Log
from dbdelta.observer import Observer, TypedObserver
from dbdelta.sources.source import SnapshotProvider
from dbdelta.sources.sql import Bind, Query, SqlQuery, Table, connect, text_clause

logger = logging.getLogger(__name__)

T = TypeVar("T")


def table(
    name: str,
    columns: Sequence[str],
    bind: Bind,
    schema: str | None = None,
    conversion: Conversion[Any] | None = None,
) -> Table:
    """Handle for a database table; see :class:`Table`."""
    return Table(name, columns, bind, schema=schema, conversion=conversion)


def select_from(source: Table) -> Query:
    """Query on a table, refine with :code:`where`, :code:`group_by` and
    :code:`having`."""
    return Query(source)


def select_using(
    bind: Bind,
    sql: str,
    columns: Sequence[str],
    conversion: Conversion[Any] | None = None,
    **params: Any,
) -> SqlQuery:
    """Query defined by a SQL statement; see :class:`SqlQuery`."""
    return SqlQuery(bind, sql, columns, conversion=conversion, **params)


def data(source: SnapshotProvider) -> DataSet:
    """Empty data set with the columns of a table or query."""
    if source is None:
        raise InvalidUsage("Null source.")
    return DataSet([column.name for column in source.columns()], name=source.name)


def observe(
    source: SnapshotProvider,
    data: Any = None,
    *,
    error_log: Log | None = None,
    config: DeltaConfig | None = None,
) -> Observer:
    """Start observing a table or query.

    Sources with a :class:`Conversion` yield a :class:`TypedObserver`.

    Arguments:
        source :class:`SnapshotProvider`:
            Table or query to observe.
        data :class:`DataSet` | rows | :code:`None`:
            Current content of the source, skips the initial query if given.
        error_log :class:`Log` | :code:`None`:
            Receives reports of failed verifications, overrides the one in config.
        config :class:`DeltaConfig` | :code:`None`:
            Settings for the observer and its deltas.

    Returns :class:`Observer`:
        Observer with the current content as baseline.
    """
    if config is None:
        config = DEFAULT_CONFIG
    if error_log is not None:
        config = config.with_error_log(error_log)
    if getattr(source, "conversion", None) is not None:
        return TypedObserver(source, data, config)
    return Observer(source, data, config)


@overload
def delta(observer: TypedObserver[T]) -> TypedDelta[T]: ...


@overload
def delta(observer: Observer) -> Delta: ...


def delta(observer):
    """Changes since the last checkpoint of the observer."""
    if observer is None:
        raise InvalidUsage("Null observer.")
    return observer.get_delta()


verify = delta


def assert_no_changes(observer: Observer) -> None:
    """Shorthand for :code:`delta(observer).end()`."""
    delta(observer).end()


def assert_inserted(observer: Observer, data: Any) -> None:
    """Shorthand for :code:`delta(observer).after(data).end()`."""
    delta(observer).after(data).end()


def assert_deleted(observer: Observer, data: Any) -> None:
    """Shorthand for :code:`delta(observer).before(data).end()`."""
    delta(observer).before(data).end()


def assert_changed(observer: Observer, after: Any, before: Any) -> None:
    """Shorthand for :code:`delta(observer).after(after).before(before).end()`."""
    delta(observer).after(after).before(before).end()


def _execute(bind: Bind, statement: sa.Executable, params: Any = None) -> int:
    try:
        with connect(bind, write=True) as conn:
            return conn.execute(statement, params).rowcount
    except sa.exc.SQLAlchemyError as e:
        raise DatabaseError(f"Statement failed: {e}") from e


def insert(target: Table, *data: Any) -> int:
    """Insert rows into a table.

    Tables with a :class:`Conversion` also accept domain objects.

    Returns :class:`int`:
        Number of inserted rows.
    """
    if target is None:
        raise InvalidUsage("Null table.")
    if target.conversion is not None:
        data = (target.conversion.rows(data, target.column_names),)
    rows = as_rows(data, target.column_names)
    if not rows:
        return 0
    records = [dict(zip(target.column_names, row)) for row in rows]
    logger.debug("Inserting %d rows into %s", len(records), target.name)
    _execute(target.bind, sa.insert(target.sa_table), records)
    return len(records)


def delete_all(source: Table | Query) -> int:
    """Delete all rows of a table, or the rows matching the WHERE clause of a query.

    Raises :class:`InvalidUsage`:
        For queries with GROUP BY or HAVING set, or without WHERE clause.

    Returns :class:`int`:
        Number of deleted rows.
    """
    if isinstance(source, Table):
        return _execute(source.bind, sa.delete(source.sa_table))
    if source is None:
        raise InvalidUsage("Null source.")
    if source.group_by_clause:
        raise InvalidUsage("GROUP BY clause is set!")
    if source.having_clause is not None:
        raise InvalidUsage("HAVING clause is set!")
    if source.where_clause is None:
        raise InvalidUsage("WHERE clause is not set!")
    statement = sa.delete(source.table.sa_table).where(source.statement().whereclause)
    return _execute(source.table.bind, statement)


def truncate(target: Table) -> None:
    """Remove all rows of a table with TRUNCATE TABLE (DELETE on SQLite)."""
    if target is None:
        raise InvalidUsage("Null table.")
    dialect = target.bind.dialect.name
    if dialect == "sqlite":
        _execute(target.bind, sa.delete(target.sa_table))
    else:
        quoted = target.bind.dialect.identifier_preparer.format_table(target.sa_table)
        _execute(target.bind, sa.text(f"TRUNCATE TABLE {quoted}"))


def execute(bind: Bind, sql: str, **params: Any) -> int:
    """Execute an arbitrary SQL statement, returns the affected row count."""
    if not sql:
        raise InvalidUsage("Empty SQL statement.")
    return _execute(bind, text_clause(sql, params))
