"""
Shared fixtures: a small film/rental schema on a temporary SQLite database.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Any, Optional

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from sqlgraph.core.defs import (
    Column,
    ColumnType,
    Entity,
    Enumeration,
    Junction,
    Relation,
    RelationKind,
    SchemaDef,
)
from sqlgraph.runtime.context import BuilderContext
from sqlgraph.schema.builder import Builder, Schema


def _key(name: str) -> Column:
    return Column(name, ColumnType.int_(), auto_increment=True)


def film_schema_def() -> SchemaDef:
    """Film/rental schema modelled on sakila."""
    country = Entity(
        name="country",
        columns=[_key("country_id"), Column("country", ColumnType.string())],
        primary_key=["country_id"],
        relations=[
            Relation("addresses", RelationKind.HAS_MANY, "address", ["country_id"], ["country_id"]),
        ],
    )
    address = Entity(
        name="address",
        columns=[
            _key("address_id"),
            Column("address", ColumnType.string()),
            Column("country_id", ColumnType.small_unsigned()),
        ],
        primary_key=["address_id"],
        relations=[
            Relation("country", RelationKind.BELONGS_TO, "country", ["country_id"], ["country_id"]),
        ],
    )
    language = Entity(
        name="language",
        columns=[_key("language_id"), Column("name", ColumnType.string())],
        primary_key=["language_id"],
    )
    store = Entity(
        name="store",
        columns=[
            _key("store_id"),
            Column("manager_staff_id", ColumnType.tiny_unsigned()),
            Column("address_id", ColumnType.int_()),
        ],
        primary_key=["store_id"],
        relations=[
            Relation("staff", RelationKind.BELONGS_TO, "staff", ["manager_staff_id"], ["staff_id"]),
            Relation("address", RelationKind.BELONGS_TO, "address", ["address_id"], ["address_id"]),
            Relation("employees", RelationKind.HAS_MANY, "staff", ["store_id"], ["store_id"]),
        ],
    )
    staff = Entity(
        name="staff",
        columns=[
            _key("staff_id"),
            Column("first_name", ColumnType.string()),
            Column("last_name", ColumnType.string()),
            Column("store_id", ColumnType.int_()),
            Column("reports_to_id", ColumnType.int_(), nullable=True),
            Column("active", ColumnType.bool_(), has_default=True),
            Column("password", ColumnType.string(), nullable=True, ignore=True),
        ],
        primary_key=["staff_id"],
        relations=[
            Relation("store", RelationKind.BELONGS_TO, "store", ["store_id"], ["store_id"]),
            Relation(
                "self_ref", RelationKind.BELONGS_TO, "staff", ["reports_to_id"], ["staff_id"], optional=True,
            ),
            Relation("payments", RelationKind.HAS_MANY, "payment", ["staff_id"], ["staff_id"]),
        ],
    )
    payment = Entity(
        name="payment",
        columns=[
            _key("payment_id"),
            Column("staff_id", ColumnType.int_()),
            Column("amount", ColumnType.decimal()),
            Column("payment_date", ColumnType.datetime()),
        ],
        primary_key=["payment_id"],
        relations=[
            Relation("staff", RelationKind.BELONGS_TO, "staff", ["staff_id"], ["staff_id"]),
        ],
    )
    actor = Entity(
        name="actor",
        columns=[
            _key("actor_id"),
            Column("first_name", ColumnType.string()),
            Column("last_name", ColumnType.string()),
        ],
        primary_key=["actor_id"],
        relations=[
            Relation(
                "films", RelationKind.MANY_TO_MANY, "film", ["actor_id"], ["film_id"],
                junction=Junction("film_actor", ["actor_id"], ["film_id"]),
            ),
        ],
    )
    film = Entity(
        name="film",
        columns=[
            _key("film_id"),
            Column("title", ColumnType.string()),
            Column("language_id", ColumnType.int_()),
            Column("rating", ColumnType.enum("mpaa_rating"), nullable=True),
        ],
        primary_key=["film_id"],
        relations=[
            Relation("language", RelationKind.BELONGS_TO, "language", ["language_id"], ["language_id"]),
            Relation(
                "actors", RelationKind.MANY_TO_MANY, "actor", ["film_id"], ["actor_id"],
                junction=Junction("film_actor", ["film_id"], ["actor_id"]),
            ),
        ],
    )
    film_actor = Entity(
        name="film_actor",
        columns=[
            Column("actor_id", ColumnType.int_()),
            Column("film_id", ColumnType.int_()),
            Column("last_update", ColumnType.datetime()),
        ],
        primary_key=["actor_id", "film_id"],
        relations=[
            Relation("actor", RelationKind.BELONGS_TO, "actor", ["actor_id"], ["actor_id"]),
            Relation("film", RelationKind.BELONGS_TO, "film", ["film_id"], ["film_id"]),
        ],
    )
    rating = Enumeration("mpaa_rating", ["G", "PG", "PG-13", "R", "NC-17"])

    return SchemaDef(
        entities=[country, address, language, store, staff, payment, actor, film, film_actor],
        enumerations=[rating],
    )


def build_schema(**context: Any) -> Schema:
    builder = Builder(BuilderContext(**context))
    builder.register_schema(film_schema_def())
    return builder.seal()


COUNTRIES = ["Afghanistan", "Algeria", "American Samoa", "Angola", "Anguilla", "Argentina", "Armenia"]
PAYMENT_COUNT = 20


def payment_amount(payment_id: int) -> Decimal:
    return Decimal("1.99") if payment_id % 4 == 0 else Decimal("12.99")


SEED: dict[str, list[dict[str, Any]]] = {
    "country": [{"country_id": i, "country": name} for i, name in enumerate(COUNTRIES, start=1)],
    "address": [
        {"address_id": 1, "address": "47 MySakila Drive", "country_id": 1},
        {"address_id": 2, "address": "28 MySQL Boulevard", "country_id": 2},
    ],
    "language": [{"language_id": 1, "name": "English"}, {"language_id": 2, "name": "Italian"}],
    "store": [
        {"store_id": 1, "manager_staff_id": 1, "address_id": 1},
        {"store_id": 2, "manager_staff_id": 2, "address_id": 2},
    ],
    "staff": [
        {"staff_id": 1, "first_name": "Mike", "last_name": "Hillyer", "store_id": 1,
         "reports_to_id": None, "active": True},
        {"staff_id": 2, "first_name": "Jon", "last_name": "Stephens", "store_id": 2,
         "reports_to_id": 1, "active": True},
        {"staff_id": 3, "first_name": "Ann", "last_name": "Lee", "store_id": 1,
         "reports_to_id": 1, "active": False},
    ],
    "payment": [
        {
            "payment_id": i,
            "staff_id": 1 if i % 2 else 2,
            "amount": payment_amount(i),
            "payment_date": dt.datetime(2025, 1, 1, 12, 0) + dt.timedelta(days=i),
        }
        for i in range(1, PAYMENT_COUNT + 1)
    ],
    "actor": [
        {"actor_id": 1, "first_name": "PENELOPE", "last_name": "GUINESS"},
        {"actor_id": 2, "first_name": "NICK", "last_name": "WAHLBERG"},
        {"actor_id": 3, "first_name": "ED", "last_name": "CHASE"},
        {"actor_id": 4, "first_name": "JENNIFER", "last_name": "DAVIS"},
    ],
    "film": [
        {"film_id": 1, "title": "ACADEMY DINOSAUR", "language_id": 1, "rating": "PG"},
        {"film_id": 2, "title": "ACE GOLDFINGER", "language_id": 1, "rating": "G"},
        {"film_id": 3, "title": "ADAPTATION HOLES", "language_id": 2, "rating": "NC-17"},
    ],
    "film_actor": [
        {"actor_id": a, "film_id": f, "last_update": dt.datetime(2006, 2, 15, 5, 5, 3)}
        for a, f in [(1, 1), (1, 3), (2, 3), (3, 1), (3, 3), (4, 2)]
    ],
}


@pytest.fixture
def schema() -> Schema:
    return build_schema()


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'film.db'}")
    metadata = build_schema().metadata
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
        for table in metadata.sorted_tables:
            rows = SEED.get(table.name)
            if rows:
                await conn.execute(table.insert(), rows)
    yield engine
    await engine.dispose()


@pytest.fixture
def run(engine):
    """Execute a request and return (data, errors)."""

    async def _run(
        schema: Schema,
        query: str,
        variables: Optional[dict[str, Any]] = None,
        extra: Optional[dict[str, Any]] = None,
    ):
        result = await schema.execute(engine, query, variables=variables, extra=extra)
        return result.data, result.errors

    return _run
