# Copyright (c) QuantCo 2022-2024
# SPDX-License-Identifier: LicenseRef-QuantCo

from __future__ import annotations

import io

import pytest
import sqlalchemy as sa
from conftest import USER_COLUMNS, USERS, User, run

import dbdelta
from dbdelta import (
    Conversion,
    DatabaseError,
    DataSet,
    DeltaAssertionError,
    InvalidUsage,
    Observer,
    Row,
    RowSet,
    StreamLog,
    Table,
    TypedObserver,
)

pytestmark = pytest.mark.sql


@pytest.fixture
def pairs(engine: sa.Engine) -> Table:
    return dbdelta.table("pairs", ["k", "v"], engine)


@pytest.fixture
def users(engine: sa.Engine) -> Table:
    return dbdelta.table(
        "users", USER_COLUMNS, engine, conversion=Conversion.for_namedtuple(User)
    )


def test_no_change(pairs: Table):
    obs = dbdelta.observe(pairs)
    assert obs.baseline == RowSet([Row("a", 1), Row("b", 2)])
    assert dbdelta.delta(obs).end() == 0


def test_simple_insert(engine: sa.Engine, pairs: Table):
    obs = dbdelta.observe(pairs)
    run(engine, "INSERT INTO pairs VALUES ('c', 3)")
    assert dbdelta.delta(obs).after(Row("c", 3)).end() == 1
    dbdelta.assert_no_changes(obs)


@pytest.mark.parametrize("declared", [0, 1, 2])
def test_one_of_two_duplicates_deleted(engine: sa.Engine, pairs: Table, declared: int):
    run(engine, "INSERT INTO pairs VALUES ('x', 9), ('x', 9)")
    obs = dbdelta.observe(pairs)
    run(
        engine,
        "DELETE FROM pairs WHERE rowid = (SELECT min(rowid) FROM pairs WHERE k = 'x')",
    )
    delta = dbdelta.delta(obs)
    if declared:
        delta.before([Row("x", 9)] * declared)
    if declared == 1:
        assert delta.end() == 1
    else:
        with pytest.raises(DeltaAssertionError):
            delta.end()


def test_unexplained_update(engine: sa.Engine, pairs: Table):
    obs = dbdelta.observe(pairs)
    run(engine, "UPDATE pairs SET v = 3 WHERE k = 'b'")
    with pytest.raises(DeltaAssertionError) as excinfo:
        dbdelta.delta(obs).end()
    report = excinfo.value.report
    assert report.name == "pairs"
    assert report.removed == RowSet([Row("b", 2)])
    assert report.added == RowSet([Row("b", 3)])


def test_baseline_advances_after_failure(engine: sa.Engine, pairs: Table):
    obs = dbdelta.observe(pairs)
    run(engine, "DELETE FROM pairs WHERE k = 'a'")
    with pytest.raises(DeltaAssertionError):
        dbdelta.assert_no_changes(obs)
    assert obs.baseline == RowSet([Row("b", 2)])
    dbdelta.assert_no_changes(obs)


def test_initial_data_is_trusted(pairs: Table):
    obs = dbdelta.observe(pairs, DataSet(["k", "v"]).row("a", 1))
    assert obs.baseline == RowSet([Row("a", 1)])
    dbdelta.assert_inserted(obs, [Row("b", 2)])


def test_facade_assertions(engine: sa.Engine, pairs: Table):
    obs = dbdelta.observe(pairs)
    dbdelta.insert(pairs, Row("c", 3), [("d", 4)])
    dbdelta.assert_inserted(obs, [("c", 3), ("d", 4)])
    run(engine, "UPDATE pairs SET v = 5 WHERE k = 'a'")
    dbdelta.assert_changed(obs, after=Row("a", 5), before=Row("a", 1))
    dbdelta.execute(engine, "DELETE FROM pairs WHERE k = :k", k="c")
    dbdelta.assert_deleted(obs, {"k": "c", "v": 3})
    dbdelta.verify(obs).end()


def test_data_has_source_columns(pairs: Table):
    ds = dbdelta.data(pairs).row("c", 3)
    assert ds.columns == ("k", "v")
    assert ds.name == "pairs"


def test_query_with_where(engine: sa.Engine, users: Table):
    query = dbdelta.select_from(users).where("since = :year", year=2021)
    obs = Observer(query)
    assert len(obs.baseline) == 2
    run(engine, "INSERT INTO users VALUES ('erin', 'Erin Evans', 'pw5', 2021)")
    run(engine, "INSERT INTO users VALUES ('frank', 'Frank Fox', 'pw6', 2019)")
    dbdelta.delta(obs).after(Row("erin", "Erin Evans", "pw5", 2021)).end()


def test_query_with_group_by(engine: sa.Engine, users: Table):
    query = (
        dbdelta.select_from(users)
        .select("since", "count(*)")
        .group_by("since")
        .having("count(*) > :n", n=1)
    )
    obs = Observer(query)
    assert obs.columns == ("since", "count(*)")
    assert obs.baseline == RowSet([Row(2021, 2)])
    run(engine, "INSERT INTO users VALUES ('erin', 'Erin Evans', 'pw5', 2021)")
    dbdelta.delta(obs).before(Row(2021, 2)).after(Row(2021, 3)).end()


def test_sql_query(engine: sa.Engine):
    query = dbdelta.select_using(
        engine, "SELECT login FROM users WHERE since >= :y", ["login"], y=2021
    )
    obs = dbdelta.observe(query)
    dbdelta.execute(engine, "DELETE FROM users WHERE login = :login", login="dave")
    dbdelta.assert_deleted(obs, [Row("dave")])


def test_typed_observer(engine: sa.Engine, users: Table):
    obs = dbdelta.observe(users)
    assert isinstance(obs, TypedObserver)
    erin = User("erin", "Erin Evans", "pw5", 2021)
    assert dbdelta.insert(users, erin) == 1
    delta = dbdelta.delta(obs)
    assert delta.added() == [erin]
    assert delta.removed() == []
    assert delta.after(erin).end() == 1


def test_typed_update(engine: sa.Engine, users: Table):
    obs = dbdelta.observe(users, USERS)
    run(engine, "UPDATE users SET name = 'Robert Brown' WHERE login = 'bob'")
    bob = USERS[1]
    dbdelta.delta(obs).before(bob).after(bob._replace(name="Robert Brown")).end()


def test_typed_lists(engine: sa.Engine, users: Table):
    obs = dbdelta.observe(users)
    assert dbdelta.delete_all(users) == len(USERS)
    dbdelta.delta(obs).before(USERS[:2], USERS[2:]).end()


def test_typed_failure_reports_rows(engine: sa.Engine, users: Table):
    obs = dbdelta.observe(users)
    with pytest.raises(DeltaAssertionError) as excinfo:
        dbdelta.delta(obs).after(User("zoe", "Zoe Zed", "pw", 2000)).end()
    report = excinfo.value.report
    assert report.unsatisfied_after == (Row("zoe", "Zoe Zed", "pw", 2000),)


def test_typed_observer_needs_conversion(pairs: Table):
    with pytest.raises(InvalidUsage):
        TypedObserver(pairs)


def test_delete_all_with_where(engine: sa.Engine, users: Table):
    obs = dbdelta.observe(users)
    query = dbdelta.select_from(users).where("since = :year", year=2021)
    assert dbdelta.delete_all(query) == 2
    dbdelta.delta(obs).before(USERS[2], USERS[3]).end()


@pytest.mark.parametrize(
    "refine, message",
    [
        (lambda q: q, "WHERE clause is not set!"),
        (lambda q: q.where("since > 0").group_by("since"), "GROUP BY clause is set!"),
        (
            lambda q: q.where("since > 0").having("count(*) > 1"),
            "HAVING clause is set!",
        ),
    ],
)
def test_delete_all_rejects_queries(users: Table, refine, message: str):
    query = refine(dbdelta.select_from(users))
    with pytest.raises(InvalidUsage, match=message):
        dbdelta.delete_all(query)


def test_truncate(pairs: Table):
    obs = dbdelta.observe(pairs)
    dbdelta.truncate(pairs)
    dbdelta.assert_deleted(obs, [Row("a", 1), Row("b", 2)])


def test_connection_bind(engine: sa.Engine):
    with engine.connect() as conn:
        pairs = dbdelta.table("pairs", ["k", "v"], conn)
        obs = dbdelta.observe(pairs)
        dbdelta.insert(pairs, [Row("c", 3)])
        dbdelta.assert_inserted(obs, [Row("c", 3)])
        assert not conn.closed


def test_database_errors(engine: sa.Engine):
    with pytest.raises(DatabaseError) as excinfo:
        dbdelta.observe(dbdelta.table("missing", ["x"], engine))
    assert isinstance(excinfo.value.__cause__, sa.exc.SQLAlchemyError)
    with pytest.raises(DatabaseError):
        dbdelta.execute(engine, "INSERT INTO missing VALUES (1)")


def test_invalid_sources(engine: sa.Engine):
    with pytest.raises(InvalidUsage):
        Observer(None)  # type: ignore[arg-type]
    with pytest.raises(InvalidUsage):
        dbdelta.delta(None)  # type: ignore[arg-type]
    with pytest.raises(InvalidUsage):
        dbdelta.table("pairs", [], engine)
    with pytest.raises(InvalidUsage):
        dbdelta.execute(engine, "")


def test_error_log(engine: sa.Engine, pairs: Table):
    stream = io.StringIO()
    obs = dbdelta.observe(pairs, error_log=StreamLog(stream))
    run(engine, "DELETE FROM pairs")
    with pytest.raises(DeltaAssertionError):
        dbdelta.delta(obs).before(Row("a", 1)).end()
    assert "REMOVED - 1 unclaimed:" in stream.getvalue()

    obs.log_errors_to(None)
    run(engine, "DELETE FROM pairs")
    run(engine, "INSERT INTO pairs VALUES ('z', 0)")
    with pytest.raises(DeltaAssertionError):
        dbdelta.assert_no_changes(obs)
    assert stream.getvalue().count("DbDelta Report") == 1


@pytest.mark.parametrize("user", USERS)
def test_conversion_round_trip(users: Table, user: User):
    conversion = users.conversion
    assert conversion.from_row(conversion.to_row(user)) == user
    with pytest.raises(InvalidUsage):
        conversion.to_row(None)
