"""
The generated id property of an entity class.

The property decides for every entity which id value is written into its own
insert and which expression is used wherever the entity is referenced:

1. NEW ROWS:
   - absolute ids: the generator allocates a concrete value, written as literal
   - sequences and counter tables in relative mode: the generator allocates an
     offset and writes the matching expression into the insert
   - identity columns in relative mode: the column is left out, the value is
     allocated after the insert (post_insert)

2. EXISTING ROWS:
   - with known id: referenced by that id
   - with unknown id: referenced through the unique properties of the entity
     class, rendering such an entity here is an error of the caller

The state of each entity is kept in an explicit IdState per entity instance.
"""
import logging
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel

from entsql.context.id_state import UNKNOWN_ID_MARKER, IdState, IdStatus
from entsql.context.mapping import GeneratedValue
from entsql.context.properties import AttributeAccessor, GeneratorColumn
from entsql.generators.base import IdGenerator
from entsql.statements.expressions import ColumnExpression, create_literal
from entsql.statements.statements import TableStatement
from entsql.statements.writer import StatementsWriter


class GeneratedIdProperty:
    """
    Describes the generated id field of an entity class.

    Attributes:
        entity_class: The owning EntityClass
        accessor: Reads and writes the id field
        type: The value type of the id (int or a subclass)
        column: The id column, auto generated unless we write absolute ids
        absolute_ids: New ids are written as literals
        primitive: The field is not optional, 0 stands for "no id"
        unknown_id_marker: Legacy marker of an entity with unknown id
        generator: The shared generator of new values
    """

    def __init__(self, entity_class: Any, accessor: AttributeAccessor, column_name: str,
                 generated_value: GeneratedValue) -> None:
        context = entity_class.context
        if not (isinstance(accessor.type, type) and issubclass(accessor.type, int)):
            raise ValueError(f"Generated id {entity_class.entity_type.__name__}.{accessor.name} must be an int")
        self._logger = logging.getLogger("GeneratedIdProperty")
        self.entity_class = entity_class
        self.table: str = entity_class.table
        self.accessor = accessor
        self.type = accessor.type
        self.column = GeneratorColumn(
            column_name,
            auto_generated=context.write_relative_ids or not context.is_setting_identity_allowed())
        self.absolute_ids = not self.column.is_auto_generated()
        self.primitive = not accessor.optional
        self.unknown_id_marker = self.type(UNKNOWN_ID_MARKER)
        self.generator: IdGenerator = context.get_generator(generated_value, self.table, column_name)
        # id(entity) -> (entity, state), the entity is kept to pin its id() for the run
        self._states: Dict[int, Tuple[BaseModel, IdState]] = {}

    @property
    def name(self) -> str:
        return self.accessor.name

    def __repr__(self) -> str:
        return f"GeneratedIdProperty({self.table}.{self.column.name}, generator={self.generator.name})"

    # State handling

    def get_state(self, entity: BaseModel) -> IdState:
        entry = self._states.get(id(entity))
        if entry is not None:
            return entry[1]
        return IdState.from_stored_value(self.accessor.get_value(entity), self.primitive)

    def _set_state(self, entity: BaseModel, state: IdState) -> None:
        self._states[id(entity)] = (entity, state)
        if state.value is not None:
            self.accessor.set_value(entity, self.type(state.value))

    def get_value(self, entity: BaseModel) -> Optional[int]:
        """The id value of the entity, None while it is new or an unknown reference."""
        return self.get_state(entity).value

    def get_stored_value(self, entity: BaseModel) -> Optional[int]:
        """The legacy encoding of the state (-1 for unknown references, -2 - id for known ones)."""
        encoded = self.get_state(entity).encoded
        return None if encoded is None else self.type(encoded)

    def is_new(self, entity: BaseModel) -> bool:
        """Indicates that the entity was neither written nor marked as reference."""
        return self.get_state(entity).is_new

    def is_reference(self, entity: BaseModel) -> bool:
        """Indicates that the entity exists in the database already."""
        return self.get_state(entity).is_reference

    def ensure_is_new(self, entity: BaseModel) -> None:
        if not self.is_new(entity):
            raise ValueError(f"Tried to create entity twice: {entity!r}")

    def mark_reference(self, entity: BaseModel, entity_id: Optional[int] = None) -> None:
        """
        Mark an entity as existing in the database.

        Without an id the entity has to be referenced by its unique properties.
        Entities that are written or marked already keep their state.
        """
        if not self.is_new(entity):
            return
        if entity_id is None:
            self._set_state(entity, IdState.unknown_reference())
        else:
            self._set_state(entity, IdState.known_reference(entity_id))

    # Statements

    def create_pre_insert_statements(self, writer: StatementsWriter, entity: BaseModel) -> None:
        if not self.absolute_ids:
            self.generator.create_pre_insert_statements(writer)

    def add_insert_expression(self, statement: TableStatement, entity: BaseModel) -> None:
        self.ensure_is_new(entity)
        if self.absolute_ids:
            value = self.generator.create_next_value()
            self._set_state(entity, IdState.assigned(value))
            statement.set_column_value(self.column.name, create_literal(value))
        elif not self.generator.is_post_increment():
            value = self.generator.create_next_value()
            self._set_state(entity, IdState.assigned(value))
            self.generator.add_next_value(statement, self.column.name, value)

    def post_insert(self, entity: BaseModel) -> None:
        """Called after the insert of the entity was written."""
        if not self.absolute_ids and self.generator.is_post_increment():
            # Identity column -> the database has incremented the id during the insert
            self._set_state(entity, IdState.assigned(self.generator.create_next_value()))

    def get_expression(self, entity: BaseModel, where_expression: bool = False) -> Optional[ColumnExpression]:
        """
        The (relative or absolute) id of an entity in SQL.

        Returns None if the entity was not written up to now.

        Raises:
            ValueError: if the entity is a reference without any id
        """
        state = self.get_state(entity)
        if state.status is IdStatus.UNASSIGNED:
            return None
        if state.status is IdStatus.UNKNOWN_REFERENCE:
            raise ValueError(f"Entity must be referenced by an unique property: {entity!r}")
        if state.status is IdStatus.KNOWN_REFERENCE or self.absolute_ids:
            return create_literal(state.value)
        return self.generator.get_expression(self.table, self.column.name, state.value, where_expression)
