"""Introspection helpers for SQLAlchemy query scopes and mapped classes."""

from typing import Any, List, Optional

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Query


def model_class_for(scope: Query):
    """Return the mapped class a query selects."""
    return scope.column_descriptions[0]["entity"]


def mapper_for(klass):
    mapper = sa_inspect(klass, raiseerr=False)
    if mapper is None or not hasattr(mapper, "primary_key"):
        return None
    return mapper


def primary_key_for(klass):
    """Primary key column attribute of a mapped class (first column for composite keys)."""
    mapper = mapper_for(klass)
    if mapper is None:
        return None
    return getattr(klass, mapper.get_property_by_column(mapper.primary_key[0]).key)


def column_names(klass) -> List[str]:
    mapper = mapper_for(klass)
    if mapper is None:
        return []
    return [attr.key for attr in mapper.column_attrs]


def table_name_for(klass) -> Optional[str]:
    return getattr(klass, "__tablename__", None)


def identity_of(record: Any) -> Any:
    """Primary key value of a mapped record, or the record itself for plain values."""
    primary_key = primary_key_for(type(record))
    if primary_key is None:
        return getattr(record, "id", record)
    return getattr(record, primary_key.key)


def is_mapped(record: Any) -> bool:
    return mapper_for(type(record)) is not None


def dialect_name(scope: Query) -> str:
    """Lowercase dialect name of the engine the query's session is bound to."""
    return scope.session.get_bind().dialect.name.lower()
