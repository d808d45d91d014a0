"""
Column level descriptors of entity classes.
"""
import types
from typing import Any, Optional, Tuple, Type, Union, get_args, get_origin

from pydantic import BaseModel

from entsql.statements.expressions import ColumnExpression, create_literal
from entsql.statements.statements import TableStatement


def unwrap_optional(annotation: Any) -> Tuple[Any, bool]:
    """Strip ``Optional[...]`` from an annotation, returns the inner type and whether it was optional."""
    if get_origin(annotation) in (Union, types.UnionType):
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0], len(args) < len(get_args(annotation))
    return annotation, False


class AttributeAccessor:
    """Reads and writes one field of an entity."""

    def __init__(self, name: str, annotation: Any) -> None:
        self.name = name
        self.type, self.optional = unwrap_optional(annotation)

    def get_value(self, entity: BaseModel) -> Any:
        return getattr(entity, self.name)

    def set_value(self, entity: BaseModel, value: Any) -> None:
        setattr(entity, self.name, value)

    def __repr__(self) -> str:
        return f"AttributeAccessor({self.name}: {getattr(self.type, '__name__', self.type)})"


class GeneratorColumn:
    """
    A column of a table.

    auto_generated indicates that the value is provided by the database (or by
    an expression of the id generator), not as literal.
    """

    def __init__(self, name: str, auto_generated: bool = False, unique: bool = False) -> None:
        self.name = name
        self.auto_generated = auto_generated
        self.unique = unique

    def is_auto_generated(self) -> bool:
        return self.auto_generated

    def __repr__(self) -> str:
        return f"GeneratorColumn({self.name})"


class PrimitiveProperty:
    """A field written as literal value."""

    def __init__(self, table: str, accessor: AttributeAccessor, column: GeneratorColumn) -> None:
        self.table = table
        self.accessor = accessor
        self.column = column

    @property
    def name(self) -> str:
        return self.accessor.name

    def get_value(self, entity: BaseModel) -> Any:
        return self.accessor.get_value(entity)

    def get_expression(self, entity: BaseModel, where_expression: bool = False) -> Optional[ColumnExpression]:
        return create_literal(self.get_value(entity))

    def add_insert_expression(self, statement: TableStatement, entity: BaseModel) -> None:
        statement.set_column_value(self.column.name, self.get_expression(entity))


class EntityReferenceProperty:
    """A many-to-one field, written as the id expression of the referenced entity."""

    def __init__(self, context: Any, table: str, accessor: AttributeAccessor, column: GeneratorColumn,
                 target_type: Type[BaseModel]) -> None:
        self.context = context
        self.table = table
        self.accessor = accessor
        self.column = column
        self.target_type = target_type

    @property
    def name(self) -> str:
        return self.accessor.name

    def get_value(self, entity: BaseModel) -> Optional[BaseModel]:
        return self.accessor.get_value(entity)

    def get_expression(self, entity: BaseModel, where_expression: bool = False) -> Optional[ColumnExpression]:
        target = self.get_value(entity)
        if target is None:
            return create_literal(None)
        expression = self.context.get_description(type(target)).get_entity_reference(target, where_expression)
        if expression is None:
            raise ValueError(f"Referenced entity {target!r} of {entity!r} was not written")
        return expression

    def add_insert_expression(self, statement: TableStatement, entity: BaseModel) -> None:
        statement.set_column_value(self.column.name, self.get_expression(entity))
