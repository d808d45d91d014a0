"""
Description of an entity model: its table, id property and columns.

Only what the SQL generation needs is read from the pydantic model:
scalar fields become columns, fields typed with another entity model become
many-to-one foreign keys (``<field>_id``), everything else is skipped.
"""
import logging
import re
import uuid
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional, Type

from pydantic import BaseModel
from sqlalchemy import column, select, table

from entsql.context.generated_id_property import GeneratedIdProperty
from entsql.context.id_state import IdStatus
from entsql.context.mapping import Column, GeneratedValue
from entsql.context.properties import (
    AttributeAccessor, EntityReferenceProperty, GeneratorColumn, PrimitiveProperty
)
from entsql.statements.expressions import ColumnExpression

SCALAR_TYPES = (str, int, float, bool, Decimal, datetime, date, time, uuid.UUID, bytes, Enum)


def _find_marker(metadata: List[Any], marker_type: type) -> Any:
    return next((marker for marker in metadata if isinstance(marker, marker_type)), None)


def is_entity_type(candidate: Any) -> bool:
    """Indicates that a type is an entity model, i.e. a pydantic model with a generated id."""
    if not (isinstance(candidate, type) and issubclass(candidate, BaseModel)):
        return False
    return any(_find_marker(field.metadata, GeneratedValue) is not None
               for field in candidate.model_fields.values())


def default_table_name(entity_type: type) -> str:
    """PersonAddress -> person_address"""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", entity_type.__name__).lower()


class EntityClass:
    """
    Describes one entity model.

    Attributes:
        context: The GenerationContext that created this description
        entity_type: The pydantic model class
        table: The table of the entity
        id_property: The generated id
        properties: Scalar columns in declaration order
        references: Many-to-one references in declaration order
    """

    def __init__(self, context: Any, entity_type: Type[BaseModel]) -> None:
        self._logger = logging.getLogger("EntityClass")
        self.context = context
        self.entity_type = entity_type
        self.table: str = getattr(entity_type, "__tablename__", None) or default_table_name(entity_type)
        self.id_property: Optional[GeneratedIdProperty] = None
        self.properties: List[PrimitiveProperty] = []
        self.references: List[EntityReferenceProperty] = []
        self._read_fields()

    def __repr__(self) -> str:
        return f"EntityClass({self.entity_type.__name__} -> {self.table})"

    def _read_fields(self) -> None:
        for name, field in self.entity_type.model_fields.items():
            generated = _find_marker(field.metadata, GeneratedValue)
            column_marker: Optional[Column] = _find_marker(field.metadata, Column)
            accessor = AttributeAccessor(name, field.annotation)
            column_name = column_marker.name if column_marker and column_marker.name else None
            unique = bool(column_marker and column_marker.unique)

            if generated is not None:
                if self.id_property is not None:
                    raise ValueError(f"{self.entity_type.__name__} has more than one generated id")
                self.id_property = GeneratedIdProperty(self, accessor, column_name or name, generated)
            elif is_entity_type(accessor.type):
                self.references.append(EntityReferenceProperty(
                    self.context, self.table, accessor,
                    GeneratorColumn(column_name or f"{name}_id", unique=unique), accessor.type))
            elif isinstance(accessor.type, type) and issubclass(accessor.type, SCALAR_TYPES):
                self.properties.append(PrimitiveProperty(
                    self.table, accessor, GeneratorColumn(column_name or name, unique=unique)))
            else:
                self._logger.debug(f"Skipping field {self.entity_type.__name__}.{name}: {field.annotation}")

        if self.id_property is None:
            raise ValueError(f"{self.entity_type.__name__} has no field marked with GeneratedValue")

    @property
    def unique_properties(self) -> List[PrimitiveProperty]:
        return [prop for prop in self.properties if prop.column.unique]

    def get_entity_reference(self, entity: BaseModel, where_expression: bool = False) -> Optional[ColumnExpression]:
        """
        Expression for the id of an entity, wherever it is referenced.

        Existing rows with unknown id are looked up by the unique properties.
        Returns None if the entity was not written up to now.
        """
        if self.id_property.get_state(entity).status is IdStatus.UNKNOWN_REFERENCE:
            return self._build_unique_reference(entity)
        return self.id_property.get_expression(entity, where_expression)

    def _build_unique_reference(self, entity: BaseModel) -> ColumnExpression:
        unique_properties = self.unique_properties
        if not unique_properties:
            raise ValueError(f"Entity must be referenced by an unique property: {entity!r}")
        conditions = [column(prop.column.name) == prop.get_expression(entity) for prop in unique_properties]
        return (
            select(column(self.id_property.column.name))
            .select_from(table(self.table))
            .where(*conditions)
            .scalar_subquery()
        )
