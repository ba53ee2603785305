"""
End-to-end read queries against the film/rental database.
"""

from __future__ import annotations

from decimal import Decimal


class TestRootQueries:

    async def test_store_with_manager(self, schema, run):
        query = "{ store(filters: {storeId: {eq: 1}}) { nodes { storeId staff { firstName } } } }"
        data, errors = await run(schema, query)
        assert errors is None
        assert data == {"store": {"nodes": [{"storeId": 1, "staff": {"firstName": "Mike"}}]}}

    async def test_edges_and_nodes_agree(self, schema, run):
        data, errors = await run(schema, "{ language { edges { cursor node { name } } nodes { name } } }")
        assert errors is None
        connection = data["language"]
        assert [edge["node"] for edge in connection["edges"]] == connection["nodes"]
        assert [edge["cursor"] for edge in connection["edges"]] == ["Int[1]:1", "Int[1]:2"]

    async def test_all_rows_pagination_info(self, schema, run):
        data, errors = await run(schema, "{ country { paginationInfo { pages current offset total } } }")
        assert errors is None
        assert data["country"]["paginationInfo"] == {"pages": 1, "current": 0, "offset": 0, "total": 7}

    async def test_decimal_and_datetime_output(self, schema, run):
        data, errors = await run(schema, "{ paymentByPk(paymentId: 4) { amount paymentDate } }")
        assert errors is None
        assert Decimal(data["paymentByPk"]["amount"]) == Decimal("1.99")
        assert data["paymentByPk"]["paymentDate"] == "2025-01-05 12:00:00"

    async def test_enum_output(self, schema, run):
        data, errors = await run(schema, "{ film { nodes { rating } } }")
        assert errors is None
        assert [n["rating"] for n in data["film"]["nodes"]] == ["PG", "G", "NC17"]

    async def test_typename(self, schema, run):
        data, errors = await run(schema, "{ film { __typename edges { __typename node { __typename } } } }")
        assert errors is None
        assert data["film"]["__typename"] == "FilmConnection"
        assert data["film"]["edges"][0] == {"__typename": "FilmEdge", "node": {"__typename": "Film"}}


class TestByPk:

    async def test_found(self, schema, run):
        data, errors = await run(schema, "{ staffByPk(staffId: 2) { firstName lastName active } }")
        assert errors is None
        assert data == {"staffByPk": {"firstName": "Jon", "lastName": "Stephens", "active": True}}

    async def test_missing_row_is_null(self, schema, run):
        data, errors = await run(schema, "{ staffByPk(staffId: 99) { firstName } }")
        assert errors is None
        assert data == {"staffByPk": None}

    async def test_composite_key(self, schema, run):
        query = "{ filmActorByPk(actorId: 2, filmId: 3) { actorId filmId lastUpdate actor { firstName } } }"
        data, errors = await run(schema, query)
        assert errors is None
        assert data["filmActorByPk"] == {
            "actorId": 2,
            "filmId": 3,
            "lastUpdate": "2006-02-15 05:05:03",
            "actor": {"firstName": "NICK"},
        }

    async def test_missing_key_argument_fails_validation(self, schema, run):
        data, errors = await run(schema, "{ filmActorByPk(actorId: 2) { filmId } }")
        assert data is None
        assert "filmId" in errors[0].message


class TestOrdering:

    async def test_descending(self, schema, run):
        data, errors = await run(schema, "{ country(orderBy: {country: Desc}) { nodes { country } } }")
        assert errors is None
        assert data["country"]["nodes"][0] == {"country": "Armenia"}

    async def test_written_key_order_is_kept(self, schema, run):
        query = "{ payment(orderBy: {amount: Asc, paymentId: Desc}) { nodes { paymentId } } }"
        data, errors = await run(schema, query)
        assert errors is None
        assert [n["paymentId"] for n in data["payment"]["nodes"]][:5] == [20, 16, 12, 8, 4]

        query = "{ payment(orderBy: {paymentId: Desc, amount: Asc}) { nodes { paymentId } } }"
        data, errors = await run(schema, query)
        assert errors is None
        assert [n["paymentId"] for n in data["payment"]["nodes"]][:3] == [20, 19, 18]

    async def test_key_order_from_variables(self, schema, run):
        query = "query ($o: PaymentOrderInput) { payment(orderBy: $o) { nodes { paymentId } } }"
        data, errors = await run(schema, query, {"o": {"amount": "Asc", "paymentId": "Desc"}})
        assert errors is None
        assert [n["paymentId"] for n in data["payment"]["nodes"]][:2] == [20, 16]

    async def test_related_order_and_filter(self, schema, run):
        query = """
        {
          staffByPk(staffId: 2) {
            payments(filters: {paymentId: {gt: 10}}, orderBy: {paymentId: Desc}) {
              nodes { paymentId }
            }
          }
        }
        """
        data, errors = await run(schema, query)
        assert errors is None
        assert [n["paymentId"] for n in data["staffByPk"]["payments"]["nodes"]] == [20, 18, 16, 14, 12]


class TestRelations:

    async def test_self_referential_hierarchy(self, schema, run):
        query = "{ staff { nodes { firstName selfRefReverse { nodes { firstName } } selfRef { firstName } } } }"
        data, errors = await run(schema, query)
        assert errors is None
        nodes = {n["firstName"]: n for n in data["staff"]["nodes"]}

        manager = nodes["Mike"]
        assert manager["selfRef"] is None
        assert sorted(n["firstName"] for n in manager["selfRefReverse"]["nodes"]) == ["Ann", "Jon"]

        report = nodes["Jon"]
        assert report["selfRef"] == {"firstName": "Mike"}
        assert report["selfRefReverse"]["nodes"] == []

    async def test_has_many(self, schema, run):
        query = "{ country(filters: {countryId: {lte: 3}}) { nodes { countryId addresses { nodes { address } } } } }"
        data, errors = await run(schema, query)
        assert errors is None
        assert data["country"]["nodes"] == [
            {"countryId": 1, "addresses": {"nodes": [{"address": "47 MySakila Drive"}]}},
            {"countryId": 2, "addresses": {"nodes": [{"address": "28 MySQL Boulevard"}]}},
            {"countryId": 3, "addresses": {"nodes": []}},
        ]

    async def test_many_to_many(self, schema, run):
        query = """
        {
          filmByPk(filmId: 3) {
            title
            actors(orderBy: {lastName: Asc}) { nodes { lastName } paginationInfo { total } }
          }
        }
        """
        data, errors = await run(schema, query)
        assert errors is None
        film = data["filmByPk"]
        assert [n["lastName"] for n in film["actors"]["nodes"]] == ["CHASE", "GUINESS", "WAHLBERG"]
        assert film["actors"]["paginationInfo"] == {"total": 3}

    async def test_deep_nesting(self, schema, run):
        query = """
        {
          paymentByPk(paymentId: 2) {
            staff { store { address { country { country } } } }
          }
        }
        """
        data, errors = await run(schema, query)
        assert errors is None
        assert data["paymentByPk"]["staff"]["store"]["address"]["country"] == {"country": "Algeria"}
