"""
Statements produced for entities and id generators.

Table statements collect column expressions in insertion order and are
rendered through SQLAlchemy Core; ``PlainStatement`` carries SQL that is
already dialect specific (sequence maintenance and the like).
"""
from abc import ABC, abstractmethod
from typing import Dict

from sqlalchemy import and_, column, insert, table, update
from sqlalchemy.sql.expression import Executable

from entsql.statements.expressions import ColumnExpression


class EntityStatement(ABC):
    """A single SQL statement."""


class PlainStatement(EntityStatement):
    """A statement with fixed SQL text."""

    def __init__(self, sql: str) -> None:
        self.sql = sql

    def __repr__(self) -> str:
        return f"PlainStatement({self.sql!r})"


class TableStatement(EntityStatement):
    """An insert or update for one table, built column by column."""

    def __init__(self, table_name: str) -> None:
        self.table = table_name
        self.values: Dict[str, ColumnExpression] = {}

    def set_column_value(self, column_name: str, expression: ColumnExpression) -> None:
        self.values[column_name] = expression

    def is_empty(self) -> bool:
        return not self.values

    def _table_clause(self, *extra_columns: str):
        names = list(self.values) + [c for c in extra_columns if c not in self.values]
        return table(self.table, *(column(name) for name in names))

    @abstractmethod
    def to_sqlalchemy(self) -> Executable:
        """Build the SQLAlchemy construct for rendering."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.table}, columns={list(self.values)})"


class InsertStatement(TableStatement):

    def to_sqlalchemy(self) -> Executable:
        statement = insert(self._table_clause())
        if self.values:
            statement = statement.values(self.values)
        return statement


class UpdateStatement(TableStatement):
    """Update of all rows matching the given column values."""

    def __init__(self, table_name: str) -> None:
        super().__init__(table_name)
        self.conditions: Dict[str, ColumnExpression] = {}

    def add_condition(self, column_name: str, expression: ColumnExpression) -> None:
        self.conditions[column_name] = expression

    def to_sqlalchemy(self) -> Executable:
        target = self._table_clause(*self.conditions)
        statement = update(target).values(self.values)
        if self.conditions:
            statement = statement.where(
                and_(*(target.c[name] == expression for name, expression in self.conditions.items()))
            )
        return statement
