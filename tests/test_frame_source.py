# Copyright (c) QuantCo 2022-2024
# SPDX-License-Identifier: LicenseRef-QuantCo

from __future__ import annotations

from typing import NamedTuple

import pandas as pd
import pytest

import dbdelta
from dbdelta import Conversion, FrameSource, InvalidUsage, Row, TypedObserver

pytestmark = pytest.mark.pandas


class Price(NamedTuple):
    item: str
    price: float


class Store:
    """In-memory table changed by the code under test."""

    def __init__(self):
        self.df = pd.DataFrame({"item": ["apple", "pear"], "price": [1.0, 2.5]})
        self.reads = 0

    def read(self) -> pd.DataFrame:
        self.reads += 1
        return self.df


def test_frame_source():
    store = Store()
    obs = dbdelta.observe(FrameSource(["item", "price"], store.read, name="prices"))
    store.df = pd.concat(
        [store.df, pd.DataFrame({"item": ["plum"], "price": [None]})], ignore_index=True
    )
    delta = dbdelta.delta(obs)
    assert delta.pending_added == dbdelta.RowSet([Row("plum", None)])
    delta.after(Row("plum", None)).end()


def test_initial_data_skips_query():
    store = Store()
    source = FrameSource(["item", "price"], store.read)
    obs = dbdelta.observe(source, dbdelta.DataSet.from_frame(store.df))
    assert store.reads == 0
    dbdelta.assert_no_changes(obs)
    assert store.reads == 1


def test_typed_frame_source():
    store = Store()
    source = FrameSource(
        ["item", "price"], store.read, conversion=Conversion.for_namedtuple(Price)
    )
    obs = dbdelta.observe(source)
    assert isinstance(obs, TypedObserver)
    store.df = store.df.assign(price=[1.0, 3.0])
    delta = dbdelta.delta(obs)
    assert delta.removed() == [Price("pear", 2.5)]
    assert delta.added() == [Price("pear", 3.0)]
    delta.before(Price("pear", 2.5)).after(Price("pear", 3.0)).end()


def test_missing_columns():
    store = Store()
    with pytest.raises(InvalidUsage):
        dbdelta.observe(FrameSource(["item", "cost"], store.read))
    with pytest.raises(InvalidUsage):
        FrameSource([], store.read)


def test_typed_observer_with_frame_data():
    store = Store()
    source = FrameSource(
        ["item", "price"], store.read, conversion=Conversion.for_namedtuple(Price)
    )
    obs = dbdelta.observe(source, store.df)
    assert obs.baseline == dbdelta.RowSet([Row("apple", 1.0), Row("pear", 2.5)])
    dbdelta.assert_no_changes(obs)


def test_typed_declarations_as_frame_and_mapping():
    store = Store()
    source = FrameSource(
        ["item", "price"], store.read, conversion=Conversion.for_namedtuple(Price)
    )
    obs = dbdelta.observe(source)
    store.df = pd.DataFrame({"item": ["plum", "fig"], "price": [0.5, 4.0]})
    removed = pd.DataFrame({"price": [1.0, 2.5], "item": ["apple", "pear"]})
    dbdelta.delta(obs).before(removed).after(
        {"item": "plum", "price": 0.5}, Price("fig", 4.0)
    ).end()
