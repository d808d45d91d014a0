"""
Base class of all id generators.

A generator owns the cursor of exactly one physical counter (a sequence, a
row in a counter table or an identity column). It is shared by every
property that references the same counter, for the whole generation run.

The cursor may be resynchronized once, before the first value is allocated,
when a connected writer reads the real value from the database.
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, ConfigDict, PrivateAttr

from entsql.context.dialect import GeneratorDialect
from entsql.statements.expressions import ColumnExpression
from entsql.statements.statements import TableStatement
from entsql.statements.writer import StatementsWriter


class IdGenerator(BaseModel, ABC):
    """
    Generates the values of a primary key column.

    Attributes:
        dialect: Renders the SQL fragments of this generator
        relative: Values are offsets to the unknown start value of the counter
        current_value: The cursor, its meaning depends on the variant
    """
    dialect: GeneratorDialect
    relative: bool = False
    current_value: int = 0

    _logger: logging.Logger = PrivateAttr(default_factory=lambda: logging.getLogger("IdGenerator"))
    _synchronized: bool = PrivateAttr(default=False)
    _allocated: int = PrivateAttr(default=0)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of the physical counter, for logging."""

    @abstractmethod
    def _next_value(self) -> int:
        ...

    def create_next_value(self) -> int:
        """Allocate the next value."""
        value = self._next_value()
        self._allocated += 1
        return value

    @property
    def allocated(self) -> int:
        """Count of values allocated during this run."""
        return self._allocated

    @abstractmethod
    def is_post_increment(self) -> bool:
        """Indicates that the value is assigned by the database during the insert."""

    @abstractmethod
    def add_next_value(self, statement: TableStatement, column: str, value: int) -> None:
        """Write the expression for a freshly allocated value into an insert."""

    @abstractmethod
    def get_expression(self, table: Optional[str], column: Optional[str], value: int,
                       where_expression: bool) -> ColumnExpression:
        """
        Render a reference to an allocated value, relative to the counter.

        Rendering the current value yields the query that reads the cursor
        from the database.
        """

    def create_pre_insert_statements(self, writer: StatementsWriter) -> None:
        """Write statements that need to run before the next insert."""

    def create_alignment_statements(self, writer: StatementsWriter) -> None:
        """Write statements that move the database counter behind all written values."""

    def get_current_value(self) -> int:
        return self.current_value

    def set_current_value(self, value: int) -> None:
        """Resynchronize the cursor with the database, only once and before any allocation."""
        if self._synchronized:
            raise ValueError(f"Generator {self.name} was already synchronized")
        if self._allocated:
            raise ValueError(f"Generator {self.name} has already allocated {self._allocated} values")
        self._synchronized = True
        self._apply_current_value(value)
        self._logger.debug(f"Synchronized generator {self.name} to {value}")

    def _apply_current_value(self, value: int) -> None:
        self.current_value = value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name}, current_value={self.current_value})"
