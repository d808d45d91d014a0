"""
SQL generator that executes the statements directly on a database connection.

Before the first statement is executed, the cursor of every id generator is
read from the database, so that absolute ids continue the existing counters.
"""
import logging
import re
import time
from typing import List, Optional

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from entsql.context.dialect import get_dialect
from entsql.context.entity_class import EntityClass
from entsql.context.generation_context import GenerationContext
from entsql.errors import GeneratorInitializationError, StatementExecutionError
from entsql.generator import EntitySqlGenerator
from entsql.generators.base import IdGenerator
from entsql.statements.statements import EntityStatement

# A rendered expression that is a complete query already
_QUERY_EXPRESSION = re.compile(r"\((SELECT\W.*)\)", re.IGNORECASE | re.DOTALL)


def trim_statement(sql: str) -> str:
    """Remove surrounding whitespace and ';', except the ';' of a trailing "END;"."""
    start = 0
    end = len(sql)
    while start < end and (sql[start] == ";" or sql[start].isspace()):
        start += 1
    while start < end:
        char = sql[end - 1]
        if char == ";":
            if end - 4 >= start and sql[end - 4:end].lower() == "end;":
                break
        elif not char.isspace():
            break
        end -= 1
    return sql[start:end]


class ConnectedEntitySqlGenerator(EntitySqlGenerator):
    """
    Writes the SQL statements of the entities directly to a database.

    The generator opens one connection (and transaction) of the engine for its
    whole lifetime. close() commits the transaction, abort() rolls it back.

    Attributes:
        engine: The engine that provided the connection
        connection: The connection used for all statements
        statements_count: Count of statements executed up to now
    """
    # Seconds to wait, until the next log message with the current count of statements is written
    SECONDS_BETWEEN_LOG_MESSAGES = 60.0

    _logger = logging.getLogger("ConnectedEntitySqlGenerator")

    def __init__(self, engine: Engine, context: Optional[GenerationContext] = None) -> None:
        super().__init__(context or GenerationContext(dialect=get_dialect(engine.dialect.name)))
        self.engine = engine
        self.statements_count = 0
        self._last_log_time: Optional[float] = None
        self._synchronized: List[IdGenerator] = []
        self.connection: Connection = engine.connect()
        try:
            self._transaction = self.connection.begin()
            self.context.add_context_model_listener(self)
            self.synchronize_generators()
        except Exception:
            self._release()
            raise

    # Generator initialization

    def found_entity_class(self, entity_class: EntityClass) -> None:
        # Nothing to do
        pass

    def found_generator(self, generator: IdGenerator) -> None:
        self._synchronize(generator)

    def synchronize_generators(self) -> None:
        """Read the current values of all generators known to the context."""
        for generator in self.context.generators:
            self._synchronize(generator)

    def _build_current_value_query(self, generator: IdGenerator) -> str:
        sql = self.context.dialect.render(
            generator.get_expression(None, None, generator.get_current_value(), False))
        match = _QUERY_EXPRESSION.fullmatch(sql)
        if match:
            return match.group(1)
        return f"SELECT ({sql}) AS current_value{self.context.dialect.optional_table}"

    def _synchronize(self, generator: IdGenerator) -> None:
        if self.context.write_relative_ids or any(generator is known for known in self._synchronized):
            return
        self._synchronized.append(generator)
        sql = self._build_current_value_query(generator)
        try:
            row = self.connection.exec_driver_sql(sql).first()
        except SQLAlchemyError as e:
            raise GeneratorInitializationError(sql) from e

        if row is not None and row[0] is not None:
            generator.set_current_value(int(row[0]))
            self._logger.debug(f"Generator {generator.name} starts after {row[0]}")
        elif self.context.strict_generator_synchronization:
            raise GeneratorInitializationError(sql, f"No current value found for generator {generator.name}: {sql}")
        else:
            self._logger.warning(
                f"No current value found for generator {generator.name}, "
                f"keeping {generator.get_current_value()}")

    # Statements

    def write_statement(self, statement: EntityStatement) -> None:
        sql = trim_statement(self.context.dialect.create_sql(statement))
        try:
            self.connection.exec_driver_sql(sql)
        except SQLAlchemyError as e:
            raise StatementExecutionError(sql) from e
        self.statements_count += 1
        current_time = time.monotonic()
        if self._last_log_time is None or current_time - self._last_log_time >= self.SECONDS_BETWEEN_LOG_MESSAGES:
            self._last_log_time = current_time
            if self.statements_count > 1:
                self._logger.info(f"{self.statements_count} SQL statements executed")

    def write_comment(self, comment: str) -> None:
        # Ignore, as the database is not interested in comments
        pass

    def write_section_separator(self) -> None:
        # Ignore, as nothing happens in the database
        pass

    # Shutdown

    def close(self) -> None:
        if self._closed:
            return
        self._logger.info(f"{self.statements_count} SQL statements successfully executed")
        try:
            super().close()
            self._transaction.commit()
        finally:
            self._release()

    def abort(self) -> None:
        super().abort()
        self._release()

    def _release(self) -> None:
        self.context.remove_context_model_listener(self)
        try:
            self.connection.close()
        except Exception as e:
            # Only happens if there was already an exception during the update
            self._logger.debug(f"Ignoring failure while closing the connection: {e}")
