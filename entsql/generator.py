"""
Base class of all SQL generators for entities.

A generator writes the insert of each new entity, after the inserts of the
new entities it references. Where the statements end up (a script or a
database connection) is decided by the subclasses.
"""
import logging
from typing import Iterable, List, Optional, Set, Tuple

from pydantic import BaseModel

from entsql.context.entity_class import EntityClass
from entsql.context.generation_context import GenerationContext
from entsql.statements.statements import InsertStatement
from entsql.statements.writer import StatementsWriter


class EntitySqlGenerator(StatementsWriter):
    """
    Writes the SQL for entities to a statements sink (implemented by subclasses).

    Usage:
    ```python
    with ScriptEntitySqlGenerator(output, context) as generator:
        generator.mark_existing_entity(country)
        generator.write(person)
    ```
    """
    _logger = logging.getLogger("EntitySqlGenerator")

    def __init__(self, context: GenerationContext) -> None:
        self.context = context
        self._closed = False

    def __enter__(self) -> "EntitySqlGenerator":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        if exc_type is None:
            self.close()
        else:
            self.abort()

    def mark_existing_entity(self, entity: BaseModel, entity_id: Optional[int] = None) -> None:
        """
        Mark an entity that exists in the database already.

        Entities without id are referenced by their unique properties.
        """
        self.context.get_description(type(entity)).id_property.mark_reference(entity, entity_id)

    def write(self, entity: BaseModel) -> None:
        """
        Write the insert of a new entity, and of all new entities it references before.

        The references are walked with an explicit stack, so long chains of
        new entities don't hit the recursion limit.
        """
        # Entities whose insert waits for their references, to detect cycles
        in_progress: Set[int] = set()
        # (entity, references_done)
        pending: List[Tuple[BaseModel, bool]] = [(entity, False)]
        while pending:
            current, references_done = pending.pop()
            description = self.context.get_description(type(current))
            if references_done:
                self._write_insert(description, current)
                in_progress.discard(id(current))
                continue

            if not description.id_property.is_new(current):
                continue
            if id(current) in in_progress:
                raise ValueError(f"Circular reference to a new {type(current).__name__}, can't order the inserts")
            in_progress.add(id(current))
            pending.append((current, True))
            # reversed, so that the references are written in declaration order
            for reference in reversed(description.references):
                target = reference.get_value(current)
                if target is not None:
                    pending.append((target, False))

    def _write_insert(self, description: EntityClass, entity: BaseModel) -> None:
        id_property = description.id_property
        id_property.create_pre_insert_statements(self, entity)
        statement = InsertStatement(description.table)
        id_property.add_insert_expression(statement, entity)
        for prop in description.properties:
            prop.add_insert_expression(statement, entity)
        for reference in description.references:
            reference.add_insert_expression(statement, entity)
        self.write_statement(statement)
        id_property.post_insert(entity)

    def write_all(self, entities: Iterable[BaseModel]) -> None:
        """Discover all entity classes and generators first, then write the entities."""
        entities = list(entities)
        self.context.discover(entities)
        for entity in entities:
            self.write(entity)

    def close(self) -> None:
        """Align the database counters with the written ids and flush all statements, only once."""
        if self._closed:
            return
        self._closed = True
        self.context.write_alignment_statements(self)
        self.flush()

    def abort(self) -> None:
        """Stop after a failure, without any further statements."""
        self._logger.warning("Generation aborted")
