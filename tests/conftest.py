# Copyright (c) QuantCo 2022-2024
# SPDX-License-Identifier: LicenseRef-QuantCo
from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from typing import NamedTuple

import pytest
import sqlalchemy as sa

logging.basicConfig(stream=sys.stdout, level=logging.DEBUG)


class User(NamedTuple):
    login: str
    name: str
    password: str
    since: int


USER_COLUMNS = ("login", "name", "password", "since")

USERS = [
    User("alice", "Alice Adams", "pw1", 2019),
    User("bob", "Bob Brown", "pw2", 2020),
    User("carol", "Carol Clark", "pw3", 2021),
    User("dave", "Dave Davis", "pw4", 2021),
]


def insert_users(conn: sa.Connection, users: list[User]) -> None:
    conn.execute(
        sa.text("INSERT INTO users VALUES (:login, :name, :password, :since)"),
        [user._asdict() for user in users],
    )


@pytest.fixture
def engine() -> Iterator[sa.Engine]:
    """In-memory SQLite database with a users table and a pairs table.

    Neither table has a primary key, so duplicate rows are possible.
    """
    engine = sa.create_engine("sqlite://")
    with engine.begin() as conn:
        conn.execute(
            sa.text(
                "CREATE TABLE users "
                "(login TEXT, name TEXT, password TEXT, since INTEGER)"
            )
        )
        conn.execute(sa.text("CREATE TABLE pairs (k TEXT, v INTEGER)"))
        insert_users(conn, USERS)
        conn.execute(
            sa.text("INSERT INTO pairs VALUES (:k, :v)"),
            [{"k": "a", "v": 1}, {"k": "b", "v": 2}],
        )
    yield engine
    engine.dispose()


def run(engine: sa.Engine, sql: str, **params) -> None:
    """Change the database behind the observer's back."""
    with engine.begin() as conn:
        conn.execute(sa.text(sql), params)
