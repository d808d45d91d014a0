"""
Column expressions used in generated statements.

An expression is any SQLAlchemy column element. Literals are rendered inline
by the dialect (``literal_binds``), formulas are kept as raw SQL text.
"""
from enum import Enum
from typing import Any, TypeAlias

from sqlalchemy import literal, literal_column, null
from sqlalchemy.sql.elements import ColumnElement

ColumnExpression: TypeAlias = ColumnElement


def create_literal(value: Any) -> ColumnExpression:
    """Create the literal expression for a primitive value, None becomes NULL."""
    if value is None:
        return null()
    if isinstance(value, Enum):
        value = value.value
    return literal(value)


def create_sql_expression(sql: str) -> ColumnExpression:
    """Wrap a dialect specific SQL formula, e.g. ``nextval('person_seq')``."""
    return literal_column(sql)
