"""
Integers wider than the 32-bit GraphQL Int travel as the BigInt scalar.
"""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from sqlgraph.core.defs import Column, ColumnType, Entity, SchemaDef
from sqlgraph.runtime.context import BuilderContext
from sqlgraph.schema.builder import Builder

WIDE = 3_000_000_000


@pytest.fixture
def ledger_schema():
    ledger = Entity(
        name="ledger",
        columns=[
            Column("entry_id", ColumnType.big_int()),
            Column("amount", ColumnType.big_unsigned()),
            Column("account", ColumnType.unsigned()),
        ],
        primary_key=["entry_id"],
    )
    builder = Builder(BuilderContext())
    builder.register_schema(SchemaDef(entities=[ledger]))
    return builder.seal()


@pytest.fixture
async def ledger(tmp_path, ledger_schema):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    table = ledger_schema.metadata.tables["ledger"]
    async with engine.begin() as conn:
        await conn.run_sync(ledger_schema.metadata.create_all)
        await conn.execute(table.insert(), [
            {"entry_id": 1, "amount": 10, "account": 7},
            {"entry_id": WIDE, "amount": WIDE, "account": WIDE},
        ])

    async def run(query, variables=None):
        result = await ledger_schema.execute(engine, query, variables=variables)
        return result.data, result.errors

    yield run
    await engine.dispose()


class TestSchema:

    def test_wide_columns_use_big_int(self, ledger_schema):
        gql = ledger_schema.graphql_schema
        fields = gql.get_type("Ledger").fields
        assert str(fields["entryId"].type) == "BigInt!"
        assert str(fields["account"].type) == "BigInt!"
        assert str(gql.get_type("LedgerFilterInput").fields["amount"].type) == "BigIntegerFilterInput"
        assert str(gql.get_type("LedgerInsertInput").fields["amount"].type) == "BigInt!"
        assert str(gql.query_type.fields["ledgerByPk"].args["entryId"].type) == "BigInt!"


class TestRoundTrip:

    async def test_output(self, ledger):
        data, errors = await ledger("{ ledger { nodes { entryId amount account } } }")
        assert errors is None
        assert data["ledger"]["nodes"] == [
            {"entryId": 1, "amount": 10, "account": 7},
            {"entryId": WIDE, "amount": WIDE, "account": WIDE},
        ]

    async def test_filter_literal(self, ledger):
        data, errors = await ledger("{ ledger(filters: {amount: {gt: 2147483647}}) { nodes { entryId } } }")
        assert errors is None
        assert data["ledger"]["nodes"] == [{"entryId": WIDE}]

    async def test_filter_variable(self, ledger):
        query = "query ($f: LedgerFilterInput) { ledger(filters: $f) { nodes { amount } } }"
        data, errors = await ledger(query, {"f": {"entryId": {"isIn": [WIDE, 5]}}})
        assert errors is None
        assert data["ledger"]["nodes"] == [{"amount": WIDE}]

    async def test_by_pk(self, ledger):
        data, errors = await ledger("query ($id: BigInt!) { ledgerByPk(entryId: $id) { account } }", {"id": WIDE})
        assert errors is None
        assert data == {"ledgerByPk": {"account": WIDE}}

    async def test_insert(self, ledger):
        query = """
        mutation {
          ledgerCreateOne(data: {entryId: 3000000001, amount: 4000000000, account: 4294967295}) {
            entryId amount account
          }
        }
        """
        data, errors = await ledger(query)
        assert errors is None
        assert data == {"ledgerCreateOne": {"entryId": WIDE + 1, "amount": 4_000_000_000, "account": 2 ** 32 - 1}}

        data, errors = await ledger("{ ledgerByPk(entryId: 3000000001) { amount } }")
        assert errors is None
        assert data == {"ledgerByPk": {"amount": 4_000_000_000}}

    async def test_column_range_still_applies(self, ledger):
        query = "mutation { ledgerCreateOne(data: {entryId: 2, amount: 1, account: 4294967296}) { entryId } }"
        data, errors = await ledger(query)
        assert data is None
        assert errors[0].message.startswith("Type conversion failed for Ledger.account")

    async def test_cursor(self, ledger):
        query = "{ ledger(pagination: {cursor: {limit: 1}}) { pageInfo { endCursor } } }"
        data, errors = await ledger(query)
        assert errors is None
        assert data["ledger"]["pageInfo"]["endCursor"] == "BigInt[1]:1"

        query = '{ ledger(pagination: {cursor: {cursor: "BigInt[1]:1", limit: 1}}) { nodes { entryId } } }'
        data, errors = await ledger(query)
        assert errors is None
        assert data["ledger"]["nodes"] == [{"entryId": WIDE}]
