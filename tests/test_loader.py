"""
Tests for relation data-loaders: key normalization and batching.
"""

from __future__ import annotations

from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy import event

from sqlgraph.iam.guard import scope_fingerprint
from sqlgraph.runtime.loader import GroupKey, JunctionKey, KeyComplex, normalize_value


class TestKeys:

    def test_integer_widths_share_identity(self):
        assert normalize_value(1) == normalize_value(Decimal("1"))
        assert normalize_value(Decimal("1.5")) != normalize_value(1)

    def test_bool_is_not_an_integer(self):
        assert normalize_value(True) != normalize_value(1)

    def test_equal_keys_collapse(self):
        meta = GroupKey(target="staff", columns=("staff_id",))
        keys = {KeyComplex((1,), meta), KeyComplex((Decimal(1),), meta), KeyComplex((2,), meta)}
        assert len(keys) == 2

    def test_shape_separates_groups(self):
        plain = GroupKey(target="film", columns=("film_id",))
        ordered = GroupKey(target="film", columns=("film_id",), order=(("title", "asc"),))
        assert KeyComplex((1,), plain) != KeyComplex((1,), ordered)

    def test_compiled_condition_is_not_part_of_the_shape(self):
        a = GroupKey(target="film", columns=("film_id",), filters=(("title", (("eq", "X"),)),), condition=object())
        b = GroupKey(target="film", columns=("film_id",), filters=(("title", (("eq", "X"),)),), condition=object())
        assert a == b
        assert hash(a) == hash(b)

    def test_entity_filter_is_part_of_the_shape(self):
        table = sa.table("staff", sa.column("store_id"))
        first = GroupKey(target="staff", columns=("store_id",), scope=scope_fingerprint(table.c.store_id == 1))
        again = GroupKey(target="staff", columns=("store_id",), scope=scope_fingerprint(table.c.store_id == 1))
        second = GroupKey(target="staff", columns=("store_id",), scope=scope_fingerprint(table.c.store_id == 2))
        assert first == again
        assert first != second
        assert first != GroupKey(target="staff", columns=("store_id",))

    def test_junction_is_part_of_the_shape(self):
        junction = JunctionKey("film_actor", ("actor_id",), ("film_id",))
        a = GroupKey(target="film", columns=("film_id",), junction=junction)
        b = GroupKey(target="film", columns=("film_id",))
        assert a != b


def count_statements(engine, table):
    statements = []

    def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        if f"FROM {table}" in statement:
            statements.append(statement)

    event.listen(engine.sync_engine, "before_cursor_execute", before_cursor_execute)
    return statements


class TestBatching:

    async def test_to_one_relations_share_one_query(self, schema, engine, run):
        statements = count_statements(engine, "staff")
        data, errors = await run(schema, "{ store { nodes { storeId staff { firstName } } } }")
        assert errors is None
        assert data["store"]["nodes"] == [
            {"storeId": 1, "staff": {"firstName": "Mike"}},
            {"storeId": 2, "staff": {"firstName": "Jon"}},
        ]
        assert len(statements) == 1

    async def test_to_many_relations_share_one_query(self, schema, engine, run):
        statements = count_statements(engine, "payment")
        data, errors = await run(schema, "{ staff { nodes { staffId payments { nodes { paymentId } } } } }")
        assert errors is None
        counts = {n["staffId"]: len(n["payments"]["nodes"]) for n in data["staff"]["nodes"]}
        assert counts == {1: 10, 2: 10, 3: 0}
        assert len(statements) == 1

    async def test_different_filters_are_separate_groups(self, schema, engine, run):
        statements = count_statements(engine, "payment")
        query = """
        {
          staff {
            nodes {
              low: payments(filters: {paymentId: {lte: 4}}) { nodes { paymentId } }
              high: payments(filters: {paymentId: {gte: 17}}) { nodes { paymentId } }
            }
          }
        }
        """
        data, errors = await run(schema, query)
        assert errors is None
        mike = data["staff"]["nodes"][0]
        assert [n["paymentId"] for n in mike["low"]["nodes"]] == [1, 3]
        assert [n["paymentId"] for n in mike["high"]["nodes"]] == [17, 19]
        assert len(statements) == 2

    async def test_keys_of_different_widths_match(self, schema, run):
        # store.manager_staff_id is TinyUnsigned while staff.staff_id is Int
        data, errors = await run(schema, "{ store { nodes { managerStaffId staff { staffId } } } }")
        assert errors is None
        for node in data["store"]["nodes"]:
            assert node["staff"]["staffId"] == node["managerStaffId"]

    async def test_many_to_many_through_junction(self, schema, engine, run):
        statements = count_statements(engine, "film")
        data, errors = await run(schema, "{ actor { nodes { actorId films { nodes { filmId } } } } }")
        assert errors is None
        films = {n["actorId"]: [f["filmId"] for f in n["films"]["nodes"]] for n in data["actor"]["nodes"]}
        assert {k: sorted(v) for k, v in films.items()} == {1: [1, 3], 2: [3], 3: [1, 3], 4: [2]}
        assert len(statements) == 1
        assert "JOIN film_actor" in statements[0]
