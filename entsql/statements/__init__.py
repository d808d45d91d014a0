"""
Statements, column expressions and statement sinks.
"""
from .expressions import ColumnExpression, create_literal, create_sql_expression
from .statements import EntityStatement, PlainStatement, TableStatement, InsertStatement, UpdateStatement
from .writer import StatementsWriter

__all__ = [
    "ColumnExpression", "create_literal", "create_sql_expression",
    "EntityStatement", "PlainStatement", "TableStatement", "InsertStatement", "UpdateStatement",
    "StatementsWriter",
]
