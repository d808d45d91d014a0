"""SQL generator that writes a script to a text stream."""
from typing import TextIO

from entsql.context.generation_context import GenerationContext
from entsql.generator import EntitySqlGenerator
from entsql.statements.statements import EntityStatement


class ScriptEntitySqlGenerator(EntitySqlGenerator):
    """Writes one statement per line, terminated with ';'."""

    def __init__(self, output: TextIO, context: GenerationContext) -> None:
        super().__init__(context)
        self.output = output
        self.statements_count = 0

    def write_statement(self, statement: EntityStatement) -> None:
        sql = self.context.dialect.create_sql(statement).strip()
        if not sql.endswith(";"):
            sql += ";"
        self.output.write(sql + "\n")
        self.statements_count += 1

    def write_comment(self, comment: str) -> None:
        for line in comment.splitlines():
            self.output.write(f"-- {line}\n")

    def write_section_separator(self) -> None:
        self.output.write("\n")

    def flush(self) -> None:
        self.output.flush()

    def close(self) -> None:
        if self._closed:
            return
        super().close()
        self._logger.info(f"{self.statements_count} SQL statements written")
