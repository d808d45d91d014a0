"""
Exceptions raised while generating or executing SQL.

Caller misuse (writing an entity twice, rendering a reference without a
known id) is signalled with ``ValueError``. The classes below cover the
failures that come from the database side.
"""
from typing import Optional


class StatementExecutionError(OSError):
    """A rendered statement could not be executed against the connection."""

    def __init__(self, sql: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"Could not execute statement: {sql}")
        self.sql = sql


class GeneratorInitializationError(RuntimeError):
    """The current value of an id generator could not be read from the database."""

    def __init__(self, sql: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"Can't initialize generator with {sql}")
        self.sql = sql
