"""
Metamodel discovery from SQLAlchemy metadata.

Works with declarative models (``Base.metadata``) and with reflected
databases (``await conn.run_sync(metadata.reflect)``).

Usage:
    metadata = sa.MetaData()
    async with engine.connect() as conn:
        await conn.run_sync(metadata.reflect)
    schema_def = schema_from_metadata(metadata)
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

import sqlalchemy as sa

from .defs import Column, ColumnType, Entity, Enumeration, Relation, RelationKind, SchemaDef, TypeKind

logger = logging.getLogger(__name__)

SELF_REFERENCE_NAME = "self_ref"


def get_column_type(column: sa.Column) -> ColumnType:
    """
    Map a SQLAlchemy column type to a semantic column type.

    Dialect-specific types are matched by class name, so reflected
    columns (e.g. postgresql.INET, mysql.TINYINT) map without imports.
    """
    sql_type = column.type
    type_name = sql_type.__class__.__name__.lower()
    unsigned = bool(getattr(sql_type, "unsigned", False))

    if type_name in ("boolean", "bool", "bit"):
        return ColumnType.bool_()
    elif type_name == "tinyint":
        return ColumnType.tiny_unsigned() if unsigned else ColumnType.tiny_int()
    elif type_name in ("smallinteger", "smallint"):
        return ColumnType.small_unsigned() if unsigned else ColumnType.small_int()
    elif type_name in ("integer", "int", "mediumint"):
        return ColumnType.unsigned() if unsigned else ColumnType.int_()
    elif type_name in ("biginteger", "bigint"):
        return ColumnType.big_unsigned() if unsigned else ColumnType.big_int()
    elif type_name in ("float", "real"):
        return ColumnType.float_()
    elif type_name in ("double", "double_precision"):
        return ColumnType.double()
    elif type_name in ("numeric", "decimal", "money"):
        return ColumnType.decimal()
    elif type_name in ("char", "nchar") and getattr(sql_type, "length", None) == 1:
        return ColumnType.char()
    elif type_name in ("largebinary", "blob", "bytea", "binary", "varbinary", "longblob"):
        return ColumnType.bytes_()
    elif type_name in ("json", "jsonb"):
        return ColumnType.json()
    elif type_name == "date":
        return ColumnType.date()
    elif type_name == "time":
        return ColumnType.time()
    elif type_name in ("datetime", "timestamp"):
        if getattr(sql_type, "timezone", False):
            return ColumnType.datetime_tz()
        return ColumnType.datetime()
    elif type_name == "uuid":
        return ColumnType.uuid()
    elif type_name == "enum":
        return ColumnType.enum(_enum_name(column))
    elif type_name == "array":
        inner = sa.Column(column.name, sql_type.item_type)
        return ColumnType.array(get_column_type(inner))
    elif type_name in ("inet", "cidr"):
        return ColumnType.ip_network()
    elif type_name in ("macaddr", "macaddr8"):
        return ColumnType.mac_address()
    elif type_name in ("string", "varchar", "nvarchar", "text", "char", "nchar", "unicode", "unicodetext", "clob"):
        return ColumnType.string()
    else:
        return ColumnType.custom(type_name)


def _enum_name(column: sa.Column) -> str:
    return getattr(column.type, "name", None) or f"{column.table.name}_{column.name}"


def _enum_values(column: sa.Column) -> list[str]:
    enum_class = getattr(column.type, "enum_class", None)
    if enum_class is not None:
        return [e.value for e in enum_class]
    return list(getattr(column.type, "enums", []))


def _is_auto_increment(column: sa.Column, table: sa.Table) -> bool:
    if not column.primary_key:
        return False
    if column.autoincrement is True:
        return True
    # "auto": single integer primary key without a foreign key
    return (
        column.autoincrement == "auto"
        and len(table.primary_key.columns) == 1
        and not column.foreign_keys
        and get_column_type(column).is_integer
    )


def _relation_name(target: str, columns: list[str], taken: set[str]) -> str:
    name = target
    if name in taken:
        name = f"{target}_{'_'.join(columns)}"
    taken.add(name)
    return name


def schema_from_metadata(
    metadata: sa.MetaData,
    tables: Optional[Iterable[str]] = None,
    ignore_columns: Optional[Iterable[str]] = None,
) -> SchemaDef:
    """
    Build a SchemaDef from SQLAlchemy metadata.

    Args:
        metadata: Declared or reflected metadata
        tables: Restrict to these table names (default: all)
        ignore_columns: "table.column" names hidden from the schema

    Every foreign key yields a BELONGS_TO relation on the referencing table
    and a HAS_MANY (or HAS_ONE when the key is also the referencing table's
    primary key) relation on the referenced table. Self references only get
    the forward relation; the builder generates the reverse one.
    """
    selected = set(tables) if tables is not None else None
    ignored = set(ignore_columns or [])

    entities: dict[str, Entity] = {}
    enumerations: dict[str, Enumeration] = {}
    relation_names: dict[str, set[str]] = {}

    for table in metadata.sorted_tables:
        if selected is not None and table.name not in selected:
            continue

        columns = []
        for column in table.columns:
            column_type = get_column_type(column)
            if column_type.kind == TypeKind.ENUM and column_type.name not in enumerations:
                enumerations[column_type.name] = Enumeration(column_type.name, _enum_values(column))
            columns.append(Column(
                name=column.name,
                type=column_type,
                nullable=bool(column.nullable) and not column.primary_key,
                primary_key=column.primary_key,
                ignore=f"{table.name}.{column.name}" in ignored,
                auto_increment=_is_auto_increment(column, table),
                has_default=column.server_default is not None or column.default is not None,
            ))

        primary_key = [c.name for c in table.primary_key.columns]
        if not 1 <= len(primary_key) <= 3:
            logger.warning(f"Skipping table '{table.name}': primary key arity {len(primary_key)} unsupported")
            continue

        entities[table.name] = Entity(name=table.name, columns=columns, primary_key=primary_key)
        relation_names[table.name] = set()

    for table in metadata.sorted_tables:
        if table.name not in entities:
            continue
        source = entities[table.name]

        # Constraints are a set; visit them in column order for stable names
        constraints = sorted(table.foreign_key_constraints, key=lambda c: [col.name for col in c.columns])
        for constraint in constraints:
            target_table = constraint.referred_table.name
            if target_table not in entities:
                continue
            target = entities[target_table]
            from_columns = [c.name for c in constraint.columns]
            to_columns = [element.column.name for element in constraint.elements]
            optional = any(source.column(name).nullable for name in from_columns)

            if target_table == table.name:
                name = _relation_name(SELF_REFERENCE_NAME, from_columns, relation_names[table.name])
                source.relations.append(Relation(
                    name, RelationKind.BELONGS_TO, target_table, from_columns, to_columns, optional=True,
                ))
                continue

            name = _relation_name(target_table, from_columns, relation_names[table.name])
            source.relations.append(Relation(
                name, RelationKind.BELONGS_TO, target_table, from_columns, to_columns, optional=optional,
            ))

            back_kind = RelationKind.HAS_ONE if set(from_columns) == set(source.primary_key) else RelationKind.HAS_MANY
            back_name = _relation_name(table.name, from_columns, relation_names[target_table])
            target.relations.append(Relation(
                back_name, back_kind, table.name, to_columns, from_columns, optional=True,
            ))

    logger.info(f"Discovered {len(entities)} entities and {len(enumerations)} enumerations")
    return SchemaDef(entities=list(entities.values()), enumerations=list(enumerations.values()))
