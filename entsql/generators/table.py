"""
Ids from a counter row in an ordinary table.

The layout follows the JPA/Hibernate table generator: one row per counter in
``hibernate_sequences(sequence_name, next_val)``, where ``next_val`` is the
next free id.
"""
from typing import Any, Optional

from pydantic import PrivateAttr

from entsql.generators.base import IdGenerator
from entsql.statements.expressions import ColumnExpression, create_literal, create_sql_expression
from entsql.statements.statements import PlainStatement, TableStatement, UpdateStatement
from entsql.statements.writer import StatementsWriter


class TableIdGenerator(IdGenerator):
    """
    Generator for a counter row.

    current_value is the highest id reserved in the counter row. Ids are
    reserved in blocks of allocation_size, each block needs one update of the row.
    """
    generator_table: str = "hibernate_sequences"
    pk_column: str = "sequence_name"
    value_column: str = "next_val"
    pk_value: str
    allocation_size: int = 50
    initial_value: int = 1

    _next_id: int = PrivateAttr(default=1)
    _row_ensured: bool = PrivateAttr(default=False)

    def model_post_init(self, __context: Any) -> None:
        if "current_value" not in self.model_fields_set:
            self.current_value = 0 if self.relative else self.initial_value - 1
        self._next_id = self.current_value + 1

    @property
    def name(self) -> str:
        return f"{self.generator_table}.{self.pk_value}"

    def is_post_increment(self) -> bool:
        return False

    def _next_value(self) -> int:
        if self._next_id > self.current_value:
            # Reserved without a pre-insert statement, the row is aligned at the end
            self.current_value += self.allocation_size
        value = self._next_id
        self._next_id += 1
        return value

    def _apply_current_value(self, value: int) -> None:
        self.current_value = value
        self._next_id = value + 1

    def _ensure_row(self, writer: StatementsWriter) -> None:
        if self._row_ensured:
            return
        self._row_ensured = True
        name = self.dialect.quote_string(self.pk_value)
        writer.write_statement(PlainStatement(
            f"INSERT INTO {self.generator_table} ({self.pk_column}, {self.value_column}) "
            f"SELECT {name}, {self.initial_value}{self.dialect.optional_table} "
            f"WHERE NOT EXISTS (SELECT * FROM {self.generator_table} WHERE {self.pk_column} = {name})"))

    def _update_row(self, writer: StatementsWriter, value: ColumnExpression) -> None:
        statement = UpdateStatement(self.generator_table)
        statement.set_column_value(self.value_column, value)
        statement.add_condition(self.pk_column, create_literal(self.pk_value))
        writer.write_statement(statement)

    def create_pre_insert_statements(self, writer: StatementsWriter) -> None:
        self._ensure_row(writer)
        if self._next_id > self.current_value:
            self._update_row(writer, create_sql_expression(f"{self.value_column} + {self.allocation_size}"))
            self.current_value += self.allocation_size

    def add_next_value(self, statement: TableStatement, column: str, value: int) -> None:
        statement.set_column_value(column, self.get_expression(statement.table, column, value, False))

    def get_expression(self, table: Optional[str], column: Optional[str], value: int,
                       where_expression: bool) -> ColumnExpression:
        difference = self.current_value + 1 - value
        selected = self.value_column if difference == 0 else f"{self.value_column} - {difference}"
        name = self.dialect.quote_string(self.pk_value)
        return create_sql_expression(
            f"(SELECT {selected} FROM {self.generator_table} WHERE {self.pk_column} = {name})")

    def create_alignment_statements(self, writer: StatementsWriter) -> None:
        if self.relative or not self.allocated:
            return
        self._ensure_row(writer)
        self._update_row(writer, create_literal(self._next_id))
