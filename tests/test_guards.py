"""
Tests for entity and field guards, entity filters and the entity watch.
"""

from __future__ import annotations

import sqlalchemy as sa

from sqlgraph.iam.guard import ENTITY_GUARD_PHRASE, FIELD_GUARD_PHRASE, GuardAction, OperationType

from .conftest import build_schema


def block(reason=None):
    return lambda info, operation: GuardAction.block(reason)


def require_user(info, operation):
    if info.context.extra.get("user"):
        return GuardAction.allow()
    return GuardAction.block("Login required")


class TestEntityGuards:

    async def test_blocks_root_query(self, run):
        schema = build_schema(entity_guards={"Payment": block()})
        data, errors = await run(schema, "{ payment { nodes { paymentId } } }")
        assert data is None
        assert [e.message for e in errors] == [ENTITY_GUARD_PHRASE]

    async def test_reason_is_reported(self, run):
        schema = build_schema(entity_guards={"Payment": block("Payments are private")})
        _, errors = await run(schema, "{ paymentByPk(paymentId: 1) { paymentId } }")
        assert [e.message for e in errors] == ["Payments are private"]

    async def test_reads_request_extra(self, run):
        schema = build_schema(entity_guards={"Payment": require_user})
        data, errors = await run(schema, "{ paymentByPk(paymentId: 1) { paymentId } }", extra={"user": "mike"})
        assert errors is None
        assert data == {"paymentByPk": {"paymentId": 1}}

        data, errors = await run(schema, "{ paymentByPk(paymentId: 1) { paymentId } }")
        assert data == {"paymentByPk": None}
        assert errors[0].message == "Login required"

    async def test_applies_to_related_entity(self, run):
        schema = build_schema(entity_guards={"Staff": block()})
        query = "{ store(filters: {storeId: {eq: 1}}) { nodes { storeId staff { firstName } } } }"
        data, errors = await run(schema, query)
        assert data is None
        assert [e.message for e in errors] == [ENTITY_GUARD_PHRASE]
        assert errors[0].path == ["store", "nodes", 0, "staff"]

    async def test_other_entities_unaffected(self, run):
        schema = build_schema(entity_guards={"Payment": block()})
        data, errors = await run(schema, "{ country(filters: {countryId: {eq: 1}}) { nodes { country } } }")
        assert errors is None
        assert data == {"country": {"nodes": [{"country": "Afghanistan"}]}}

    async def test_bool_results_are_accepted(self, run):
        schema = build_schema(entity_guards={"Country": lambda info, operation: False})
        _, errors = await run(schema, "{ country { nodes { country } } }")
        assert [e.message for e in errors] == [ENTITY_GUARD_PHRASE]

    async def test_async_guard_is_an_internal_error(self, run):
        async def guard(info, operation):
            return GuardAction.allow()

        schema = build_schema(entity_guards={"Country": guard})
        data, errors = await run(schema, "{ country { nodes { country } } }")
        assert data is None
        assert errors[0].message.startswith("InternalError: ")
        assert errors[0].extensions["correlationId"] in errors[0].message

    async def test_blocks_mutations(self, run):
        schema = build_schema(entity_guards={"Country": block()})
        data, errors = await run(schema, 'mutation { countryDelete(filter: {countryId: {eq: 7}}) }')
        assert data is None
        assert [e.message for e in errors] == [ENTITY_GUARD_PHRASE]

        schema = build_schema()
        data, errors = await run(schema, "{ countryByPk(countryId: 7) { country } }")
        assert data == {"countryByPk": {"country": "Armenia"}}


class TestFieldGuards:

    async def test_blocks_one_column(self, run):
        schema = build_schema(field_guards={"Staff.lastName": block()})
        query = "{ staff(filters: {staffId: {eq: 1}}) { nodes { firstName lastName } } }"
        data, errors = await run(schema, query)
        assert data is None
        assert [e.message for e in errors] == [FIELD_GUARD_PHRASE]
        assert errors[0].path == ["staff", "nodes", 0, "lastName"]

    async def test_unselected_column_is_not_checked(self, run):
        schema = build_schema(field_guards={"Staff.lastName": block()})
        data, errors = await run(schema, "{ staff(filters: {staffId: {eq: 1}}) { nodes { firstName } } }")
        assert errors is None
        assert data == {"staff": {"nodes": [{"firstName": "Mike"}]}}

    async def test_blocks_relation_field(self, run):
        schema = build_schema(field_guards={"Staff.selfRef": block("Hierarchy is private")})
        query = "{ staff(filters: {staffId: {eq: 2}}) { nodes { firstName selfRef { firstName } } } }"
        data, errors = await run(schema, query)
        assert data == {"staff": {"nodes": [{"firstName": "Jon", "selfRef": None}]}}
        assert [e.message for e in errors] == ["Hierarchy is private"]

    async def test_blocks_mutation_input_field(self, run):
        schema = build_schema(field_guards={"Country.country": block()})
        mutation = 'mutation { countryUpdate(data: {country: "X"}, filter: {countryId: {eq: 1}}) { countryId } }'
        data, errors = await run(schema, mutation)
        assert data is None
        assert [e.message for e in errors] == [FIELD_GUARD_PHRASE]

        data, errors = await run(build_schema(), "{ countryByPk(countryId: 1) { country } }")
        assert data == {"countryByPk": {"country": "Afghanistan"}}


class TestOperations:

    async def test_entity_guard_sees_each_operation(self, run):
        seen = []

        def record(info, operation):
            seen.append(operation)
            return True

        schema = build_schema(entity_guards={"Language": record})
        for query in (
            "{ language { nodes { name } } }",
            'mutation { languageCreateOne(data: {name: "French"}) { languageId } }',
            'mutation { languageUpdate(data: {name: "Francais"}, filter: {languageId: {eq: 3}}) { name } }',
            "mutation { languageDelete(filter: {languageId: {eq: 3}}) }",
        ):
            _, errors = await run(schema, query)
            assert errors is None
        assert seen == [OperationType.READ, OperationType.CREATE, OperationType.UPDATE, OperationType.DELETE]

    async def test_read_only_entity(self, run):
        schema = build_schema(entity_guards={"Country": lambda info, operation: operation is OperationType.READ})
        data, errors = await run(schema, "{ countryByPk(countryId: 7) { country } }")
        assert errors is None
        assert data == {"countryByPk": {"country": "Armenia"}}

        data, errors = await run(schema, "mutation { countryDelete(filter: {countryId: {eq: 7}}) }")
        assert data is None
        assert [e.message for e in errors] == [ENTITY_GUARD_PHRASE]

    async def test_field_guard_sees_operation(self, run):
        guard = lambda info, operation: operation is not OperationType.UPDATE  # noqa: E731
        schema = build_schema(field_guards={"Country.country": guard})
        data, errors = await run(schema, "{ countryByPk(countryId: 1) { country } }")
        assert errors is None
        assert data == {"countryByPk": {"country": "Afghanistan"}}

        mutation = 'mutation { countryUpdate(data: {country: "X"}, filter: {countryId: {eq: 1}}) { countryId } }'
        _, errors = await run(schema, mutation)
        assert [e.message for e in errors] == [FIELD_GUARD_PHRASE]


def first_store(info, operation, table):
    return table.c.store_id == 1


def staff_ids(data):
    return [node["staffId"] for node in data["staff"]["nodes"]]


class TestEntityFilters:

    async def test_scopes_root_query(self, run):
        schema = build_schema(entity_filters={"Staff": first_store})
        query = "{ staff(pagination: {page: {page: 0, limit: 10}}) { nodes { staffId } paginationInfo { total } } }"
        data, errors = await run(schema, query)
        assert errors is None
        assert staff_ids(data) == [1, 3]
        assert data["staff"]["paginationInfo"] == {"total": 2}

    async def test_anded_with_client_filter(self, run):
        schema = build_schema(entity_filters={"Staff": first_store})
        data, errors = await run(schema, "{ staff(filters: {staffId: {eq: 2}}) { nodes { staffId } } }")
        assert errors is None
        assert staff_ids(data) == []

        data, errors = await run(schema, "{ staff(filters: {or: [{staffId: {eq: 2}}, {staffId: {eq: 3}}]}) "
                                         "{ nodes { staffId } } }")
        assert errors is None
        assert staff_ids(data) == [3]

    async def test_scopes_by_pk(self, run):
        schema = build_schema(entity_filters={"Staff": first_store})
        query = "{ a: staffByPk(staffId: 1) { staffId } b: staffByPk(staffId: 2) { staffId } }"
        data, errors = await run(schema, query)
        assert errors is None
        assert data == {"a": {"staffId": 1}, "b": None}

    async def test_scopes_relations(self, run):
        schema = build_schema(entity_filters={"Staff": first_store})
        query = "{ store { nodes { storeId employees { nodes { staffId } } } } }"
        data, errors = await run(schema, query)
        assert errors is None
        assert data["store"]["nodes"] == [
            {"storeId": 1, "employees": {"nodes": [{"staffId": 1}, {"staffId": 3}]}},
            {"storeId": 2, "employees": {"nodes": []}},
        ]

    async def test_reads_request_extra(self, run):
        def own_store(info, operation, table):
            return table.c.store_id == info.context.extra["store"]

        schema = build_schema(entity_filters={"Staff": own_store})
        data, errors = await run(schema, "{ staff { nodes { staffId } } }", extra={"store": 2})
        assert errors is None
        assert staff_ids(data) == [2]

    async def test_scopes_update(self, run):
        schema = build_schema(entity_filters={"Staff": first_store})
        data, errors = await run(schema, "mutation { staffUpdate(data: {active: false}) { staffId active } }")
        assert errors is None
        rows = sorted(data["staffUpdate"], key=lambda r: r["staffId"])
        assert rows == [{"staffId": 1, "active": False}, {"staffId": 3, "active": False}]

        data, _ = await run(build_schema(), "{ staffByPk(staffId: 2) { active } }")
        assert data == {"staffByPk": {"active": True}}

    async def test_scopes_delete_per_operation(self, run):
        def protect_early(info, operation, table):
            if operation is OperationType.DELETE:
                return table.c.country_id > 5
            return None

        schema = build_schema(entity_filters={"Country": protect_early})
        data, errors = await run(schema, "mutation { countryDelete }")
        assert errors is None
        assert data == {"countryDelete": 2}

        data, _ = await run(schema, "{ country { paginationInfo { total } } }")
        assert data["country"]["paginationInfo"] == {"total": 5}

    async def test_async_filter_is_an_internal_error(self, run):
        async def scope(info, operation, table):
            return sa.true()

        schema = build_schema(entity_filters={"Country": scope})
        data, errors = await run(schema, "{ country { nodes { country } } }")
        assert data is None
        assert errors[0].message.startswith("InternalError: ")


class TestEntityWatch:

    @staticmethod
    def recorder(events):
        async def watch(info, type_name, operation):
            table = info.context.runtime.registry.get("language").table
            count = await info.context.fetch_scalar(sa.select(sa.func.count()).select_from(table))
            events.append((type_name, operation, count))

        return watch

    async def test_called_after_commit(self, run):
        events = []
        schema = build_schema(entity_watch=self.recorder(events))
        for query in (
            "{ language { nodes { name } } }",
            'mutation { languageCreateOne(data: {name: "French"}) { languageId } }',
            'mutation { languageCreateBatch(data: [{name: "German"}, {name: "Dutch"}]) { languageId } }',
            'mutation { languageUpdate(data: {name: "Deutsch"}, filter: {name: {eq: "German"}}) { name } }',
            'mutation { languageDelete(filter: {languageId: {gt: 2}}) }',
        ):
            _, errors = await run(schema, query)
            assert errors is None
        assert events == [
            ("Language", OperationType.CREATE, 3),
            ("Language", OperationType.CREATE, 5),
            ("Language", OperationType.UPDATE, 5),
            ("Language", OperationType.DELETE, 2),
        ]

    async def test_not_called_for_failed_mutation(self, run):
        events = []
        schema = build_schema(entity_watch=self.recorder(events))
        query = "mutation { storeCreateOne(data: {managerStaffId: 300, addressId: 1}) { storeId } }"
        _, errors = await run(schema, query)
        assert errors is not None
        assert events == []

    async def test_failing_watch_keeps_the_mutation(self, run):
        async def broken(info, type_name, operation):
            raise RuntimeError("queue is down")

        schema = build_schema(entity_watch=broken)
        data, errors = await run(schema, 'mutation { languageCreateOne(data: {name: "French"}) { languageId } }')
        assert errors is None
        assert data == {"languageCreateOne": {"languageId": 3}}
