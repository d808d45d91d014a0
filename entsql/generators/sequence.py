"""
Ids from a database sequence.

Values are allocated in blocks of ``allocation_size``: each block starts with
a call of the sequence (its first id is the value returned by the sequence),
the following ids of the block are offsets to the current sequence value.
"""
from typing import Any, Optional

from pydantic import PrivateAttr

from entsql.generators.base import IdGenerator
from entsql.statements.expressions import ColumnExpression, create_sql_expression
from entsql.statements.statements import PlainStatement, TableStatement
from entsql.statements.writer import StatementsWriter


class SequenceIdGenerator(IdGenerator):
    """
    Generator for a sequence.

    current_value is the last value returned by the sequence, i.e. the first id
    of the current block. In relative mode it starts at 0, which stands for the
    unknown value of the sequence when the script is executed.
    """
    sequence_name: str
    allocation_size: int = 1
    initial_value: int = 1

    # Next id of the current block, None until the first block is opened
    _next_id: Optional[int] = PrivateAttr(default=None)
    # Indicates that we have written a call of the sequence during this run
    _sequence_called: bool = PrivateAttr(default=False)

    def model_post_init(self, __context: Any) -> None:
        if "current_value" not in self.model_fields_set and not self.relative:
            self.current_value = self.initial_value - self.allocation_size

    @property
    def name(self) -> str:
        return self.sequence_name

    def is_post_increment(self) -> bool:
        return False

    def _next_value(self) -> int:
        if self._next_id is None or self._next_id >= self.current_value + self.allocation_size:
            self.current_value += self.allocation_size
            self._next_id = self.current_value
        value = self._next_id
        self._next_id += 1
        return value

    def _apply_current_value(self, value: int) -> None:
        self.current_value = value
        self._next_id = None

    def add_next_value(self, statement: TableStatement, column: str, value: int) -> None:
        if value == self.current_value:
            # First id of a block -> let the sequence advance
            self._sequence_called = True
            statement.set_column_value(column, create_sql_expression(
                self.dialect.build_next_sequence_value(self.sequence_name, self.allocation_size)))
        else:
            statement.set_column_value(column, self.get_expression(statement.table, column, value, False))

    def get_expression(self, table: Optional[str], column: Optional[str], value: int,
                       where_expression: bool) -> ColumnExpression:
        current = self.dialect.build_current_sequence_value(
            self.sequence_name, self.allocation_size, not self._sequence_called)
        difference = value - self.current_value
        if difference == 0:
            return create_sql_expression(current)
        if difference > 0:
            return create_sql_expression(f"{current} + {difference}")
        return create_sql_expression(f"{current} - {-difference}")

    def create_alignment_statements(self, writer: StatementsWriter) -> None:
        if self.relative or not self.allocated:
            # Relative scripts advance the sequence themselves
            return
        sql = self.dialect.restart_sequence(self.sequence_name, self.current_value + self.allocation_size)
        if sql:
            writer.write_statement(PlainStatement(sql))
