"""
Database dialects for SQL generation.

A dialect answers the capability questions of the id generators (sequences,
identity columns, explicit identity values) and builds the dialect specific
SQL fragments they need. Statement rendering itself is delegated to the
matching SQLAlchemy dialect, compiled with inline literals.
"""
import logging
from typing import Any, Dict, Optional, Type

from sqlalchemy.dialects import mssql, mysql, oracle, postgresql, sqlite
from sqlalchemy.engine import Dialect
from sqlalchemy.engine.default import DefaultDialect
from sqlalchemy.sql import ClauseElement

from entsql.statements.expressions import ColumnExpression, create_literal
from entsql.statements.statements import EntityStatement, PlainStatement, TableStatement


class GeneratorDialect:
    """Dialect with ANSI defaults, base class of all database specific dialects."""
    name = "generic"

    # Appended to queries that select values without a table
    optional_table = ""

    sequence_supported = True
    identity_supported = True
    setting_identity_allowed = True

    # Subqueries on the target table are rejected inside of predicates
    nested_identity_reference_required = False

    def __init__(self) -> None:
        self.sqlalchemy_dialect: Dialect = self._create_sqlalchemy_dialect()

    def _create_sqlalchemy_dialect(self) -> Dialect:
        return DefaultDialect()

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    # Capabilities

    def is_sequence_supported(self) -> bool:
        return self.sequence_supported

    def is_identity_supported(self) -> bool:
        return self.identity_supported

    def is_setting_identity_allowed(self) -> bool:
        """Indicates that explicit values may be written into identity columns."""
        return self.setting_identity_allowed

    # Rendering

    def create_literal(self, value: Any) -> ColumnExpression:
        return create_literal(value)

    def render(self, element: ClauseElement) -> str:
        """Render an expression or statement with all values inlined."""
        return str(element.compile(dialect=self.sqlalchemy_dialect, compile_kwargs={"literal_binds": True}))

    def create_sql(self, statement: EntityStatement) -> str:
        if isinstance(statement, PlainStatement):
            return statement.sql
        if isinstance(statement, TableStatement):
            return self.render(statement.to_sqlalchemy())
        raise ValueError(f"Unsupported statement: {statement!r}")

    def quote_string(self, value: str) -> str:
        return "'" + value.replace("'", "''") + "'"

    # Sequences

    def build_next_sequence_value(self, sequence_name: str, increment: int) -> str:
        return f"NEXT VALUE FOR {sequence_name}"

    def build_current_sequence_value(self, sequence_name: str, increment: int, first_call: bool) -> str:
        """
        The current value of a sequence.

        first_call indicates that no next value was requested during this run,
        some databases can't answer the session bound current value in that case.
        """
        return f"CURRENT VALUE FOR {sequence_name}"

    def restart_sequence(self, sequence_name: str, next_value: int) -> Optional[str]:
        return f"ALTER SEQUENCE {sequence_name} RESTART WITH {next_value}"

    # Identity columns

    def build_identity_reference(self, table_name: str, column_name: str, difference: int,
                                 where_expression: bool) -> str:
        value = f"max({column_name})" if difference == 0 else f"max({column_name}) - {difference}"
        if where_expression and self.nested_identity_reference_required:
            return f"(SELECT {value} FROM (SELECT * FROM {table_name}) {table_name}_ids)"
        return f"(SELECT {value} FROM {table_name})"

    def align_identity(self, table_name: str, column_name: str, last_value: int) -> Optional[str]:
        """Statement that moves the identity of a table behind the last written value."""
        return None


class H2Dialect(GeneratorDialect):
    name = "h2"


class PostgresDialect(GeneratorDialect):
    name = "postgresql"

    def _create_sqlalchemy_dialect(self) -> Dialect:
        return postgresql.dialect()

    def build_next_sequence_value(self, sequence_name: str, increment: int) -> str:
        return f"nextval('{sequence_name}')"

    def build_current_sequence_value(self, sequence_name: str, increment: int, first_call: bool) -> str:
        if first_call:
            return f"(SELECT last_value FROM {sequence_name})"
        return f"currval('{sequence_name}')"

    def align_identity(self, table_name: str, column_name: str, last_value: int) -> Optional[str]:
        return f"SELECT setval(pg_get_serial_sequence('{table_name}', '{column_name}'), {last_value})"


class OracleDialect(GeneratorDialect):
    name = "oracle"
    optional_table = " FROM DUAL"

    def _create_sqlalchemy_dialect(self) -> Dialect:
        return oracle.dialect()

    def build_next_sequence_value(self, sequence_name: str, increment: int) -> str:
        return f"{sequence_name}.nextval"

    def build_current_sequence_value(self, sequence_name: str, increment: int, first_call: bool) -> str:
        if first_call:
            return (f"(SELECT last_number - {increment} FROM user_sequences "
                    f"WHERE sequence_name = '{sequence_name.upper()}')")
        return f"{sequence_name}.currval"

    def restart_sequence(self, sequence_name: str, next_value: int) -> Optional[str]:
        return f"ALTER SEQUENCE {sequence_name} RESTART START WITH {next_value}"

    def align_identity(self, table_name: str, column_name: str, last_value: int) -> Optional[str]:
        return (f"ALTER TABLE {table_name} MODIFY {column_name} "
                f"GENERATED BY DEFAULT AS IDENTITY (START WITH LIMIT VALUE)")


class MsSqlDialect(GeneratorDialect):
    name = "mssql"
    # Requires SET IDENTITY_INSERT for each table
    setting_identity_allowed = False

    def _create_sqlalchemy_dialect(self) -> Dialect:
        return mssql.dialect()

    def build_current_sequence_value(self, sequence_name: str, increment: int, first_call: bool) -> str:
        return f"(SELECT CONVERT(bigint, current_value) FROM sys.sequences WHERE name = '{sequence_name}')"


class MySqlDialect(GeneratorDialect):
    name = "mysql"
    optional_table = " FROM DUAL"
    sequence_supported = False
    nested_identity_reference_required = True

    def _create_sqlalchemy_dialect(self) -> Dialect:
        return mysql.dialect()

    def restart_sequence(self, sequence_name: str, next_value: int) -> Optional[str]:
        return None


class SqliteDialect(GeneratorDialect):
    name = "sqlite"
    sequence_supported = False

    def _create_sqlalchemy_dialect(self) -> Dialect:
        return sqlite.dialect()

    def restart_sequence(self, sequence_name: str, next_value: int) -> Optional[str]:
        return None


DIALECTS: Dict[str, Type[GeneratorDialect]] = {
    "generic": GeneratorDialect,
    "default": GeneratorDialect,
    "h2": H2Dialect,
    "postgresql": PostgresDialect,
    "postgres": PostgresDialect,
    "oracle": OracleDialect,
    "mssql": MsSqlDialect,
    "mysql": MySqlDialect,
    "mariadb": MySqlDialect,
    "sqlite": SqliteDialect,
}


def get_dialect(name: str) -> GeneratorDialect:
    """Find the dialect for a name, as used by SQLAlchemy engines (``engine.dialect.name``)."""
    dialect_class = DIALECTS.get(name.lower())
    if dialect_class is None:
        logging.getLogger("GeneratorDialect").warning(f"Unknown dialect '{name}', using generic SQL")
        dialect_class = GeneratorDialect
    return dialect_class()
