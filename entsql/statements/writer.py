"""Sink for generated statements."""
from abc import ABC, abstractmethod

from entsql.statements.statements import EntityStatement


class StatementsWriter(ABC):
    """Receives statements in the order they have to be executed."""

    @abstractmethod
    def write_statement(self, statement: EntityStatement) -> None:
        ...

    @abstractmethod
    def write_comment(self, comment: str) -> None:
        ...

    @abstractmethod
    def write_section_separator(self) -> None:
        ...

    def flush(self) -> None:
        pass

    def close(self) -> None:
        self.flush()
