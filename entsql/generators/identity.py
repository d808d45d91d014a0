"""Ids assigned by an identity (auto increment) column."""
from typing import Optional

from entsql.generators.base import IdGenerator
from entsql.statements.expressions import ColumnExpression, create_sql_expression
from entsql.statements.statements import PlainStatement, TableStatement
from entsql.statements.writer import StatementsWriter


class IdentityGenerator(IdGenerator):
    """
    Generator for an identity column.

    The database assigns the value during the insert, so current_value is the
    id of the last row written into the table (or the offset to the highest id
    found when the script starts, in relative mode).
    """
    table_name: str
    column_name: str

    @property
    def name(self) -> str:
        return f"{self.table_name}.{self.column_name}"

    def is_post_increment(self) -> bool:
        return True

    def _next_value(self) -> int:
        self.current_value += 1
        return self.current_value

    def add_next_value(self, statement: TableStatement, column: str, value: int) -> None:
        # The column is left out, the database knows better
        pass

    def get_expression(self, table: Optional[str], column: Optional[str], value: int,
                       where_expression: bool) -> ColumnExpression:
        return create_sql_expression(self.dialect.build_identity_reference(
            self.table_name, self.column_name, self.current_value - value, where_expression))

    def create_alignment_statements(self, writer: StatementsWriter) -> None:
        if self.relative or not self.allocated:
            return
        sql = self.dialect.align_identity(self.table_name, self.column_name, self.current_value)
        if sql:
            writer.write_statement(PlainStatement(sql))
