"""
State and configuration of one generation run.

The context owns the registries of entity classes and id generators. Both
are filled while entities are processed, or up front with discover():

```python
context = GenerationContext(dialect=PostgresDialect(), write_relative_ids=True)
context.discover(entities)      # phase 1: collect entity classes and generators
writer = ScriptEntitySqlGenerator(output, context)
writer.write_all(entities)      # phase 2: statements
```

Listeners are notified exactly once for every entity class and generator.
"""
import logging
from collections import deque
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple, Type, runtime_checkable

from pydantic import BaseModel, ConfigDict, PrivateAttr

from entsql.context.dialect import GeneratorDialect, get_dialect
from entsql.context.entity_class import EntityClass
from entsql.context.mapping import GeneratedValue, GenerationType
from entsql.context.settings import GenerationSettings
from entsql.generators.base import IdGenerator
from entsql.generators.identity import IdentityGenerator
from entsql.generators.sequence import SequenceIdGenerator
from entsql.generators.table import TableIdGenerator
from entsql.statements.writer import StatementsWriter


@runtime_checkable
class ContextModelListener(Protocol):
    """Notified about new entity classes and generators of a context."""

    def found_entity_class(self, entity_class: EntityClass) -> None: ...

    def found_generator(self, generator: IdGenerator) -> None: ...


class GenerationContext(BaseModel):
    """
    Configuration and registries of a generation run.

    Attributes:
        dialect: The target database
        write_relative_ids: Ids are written relative to the counters at execution time
        default_generator_strategy: Used for GenerationType.AUTO
        generator_table: Table of the counter rows of table generators
        strict_generator_synchronization: Reading no current value of a generator is an error
    """
    dialect: GeneratorDialect
    write_relative_ids: bool = False
    default_generator_strategy: GenerationType = GenerationType.SEQUENCE
    generator_table: str = "hibernate_sequences"
    strict_generator_synchronization: bool = False

    _generators: Dict[Tuple[str, ...], IdGenerator] = PrivateAttr(default_factory=dict)
    _entity_classes: Dict[type, EntityClass] = PrivateAttr(default_factory=dict)
    _listeners: List[ContextModelListener] = PrivateAttr(default_factory=list)
    _logger: logging.Logger = PrivateAttr(default_factory=lambda: logging.getLogger("GenerationContext"))

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @classmethod
    def from_settings(cls, settings: Optional[GenerationSettings] = None) -> "GenerationContext":
        settings = settings or GenerationSettings.from_env()
        return cls(
            dialect=get_dialect(settings.dialect),
            write_relative_ids=settings.write_relative_ids,
            default_generator_strategy=settings.default_generator_strategy,
            generator_table=settings.generator_table,
            strict_generator_synchronization=settings.strict_generator_synchronization,
        )

    def is_setting_identity_allowed(self) -> bool:
        return self.dialect.is_setting_identity_allowed()

    # Listeners

    def add_context_model_listener(self, listener: ContextModelListener) -> None:
        self._listeners.append(listener)

    def remove_context_model_listener(self, listener: ContextModelListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # Registries

    @property
    def entity_classes(self) -> List[EntityClass]:
        """All entity classes found up to now, in the order of discovery."""
        return list(self._entity_classes.values())

    @property
    def generators(self) -> List[IdGenerator]:
        """All generators found up to now, in the order of discovery."""
        return list(self._generators.values())

    def get_description(self, entity_type: Type[BaseModel]) -> EntityClass:
        """Find or create the description of an entity model."""
        description = self._entity_classes.get(entity_type)
        if description is None:
            description = EntityClass(self, entity_type)
            self._entity_classes[entity_type] = description
            self._logger.debug(f"Found entity class {description}")
            for listener in list(self._listeners):
                listener.found_entity_class(description)
        return description

    def _resolve_strategy(self, strategy: GenerationType) -> GenerationType:
        if strategy is GenerationType.AUTO:
            strategy = self.default_generator_strategy
        if strategy is GenerationType.AUTO:
            strategy = GenerationType.SEQUENCE
        if strategy is GenerationType.SEQUENCE and not self.dialect.is_sequence_supported():
            strategy = GenerationType.TABLE
        if strategy is GenerationType.IDENTITY and not self.dialect.is_identity_supported():
            strategy = GenerationType.SEQUENCE if self.dialect.is_sequence_supported() else GenerationType.TABLE
        return strategy

    def get_generator(self, generated_value: GeneratedValue, table: str, column: str) -> IdGenerator:
        """The one generator of the physical counter behind an id column."""
        strategy = self._resolve_strategy(generated_value.strategy)
        options: Dict[str, Any] = {"dialect": self.dialect, "relative": self.write_relative_ids}
        if generated_value.allocation_size is not None:
            options["allocation_size"] = generated_value.allocation_size

        if strategy is GenerationType.IDENTITY:
            key: Tuple[str, ...] = ("identity", table, column)
        elif strategy is GenerationType.SEQUENCE:
            sequence_name = generated_value.generator or f"{table}_seq"
            key = ("sequence", sequence_name)
        else:
            pk_value = generated_value.generator or table
            key = ("table", self.generator_table, pk_value)

        generator = self._generators.get(key)
        if generator is not None:
            return generator

        if strategy is GenerationType.IDENTITY:
            generator = IdentityGenerator(table_name=table, column_name=column, **options)
        elif strategy is GenerationType.SEQUENCE:
            generator = SequenceIdGenerator(
                sequence_name=key[1], initial_value=generated_value.initial_value, **options)
        else:
            generator = TableIdGenerator(
                generator_table=self.generator_table, pk_value=key[2],
                initial_value=generated_value.initial_value, **options)
        self._generators[key] = generator
        self._logger.debug(f"Found generator {generator!r} for {table}.{column}")
        for listener in list(self._listeners):
            listener.found_generator(generator)
        return generator

    def discover(self, entities: Iterable[BaseModel]) -> None:
        """
        Collect the entity classes and generators of all entities and their references.

        Runs before any statement is written, so that generators can be
        initialized up front.
        """
        pending = deque(entities)
        seen: set = set()
        while pending:
            entity = pending.popleft()
            if id(entity) in seen:
                continue
            seen.add(id(entity))
            description = self.get_description(type(entity))
            for reference in description.references:
                target = reference.get_value(entity)
                if target is not None:
                    pending.append(target)
        self._logger.info(
            f"Discovered {len(self._entity_classes)} entity classes and {len(self._generators)} generators")

    def write_alignment_statements(self, writer: StatementsWriter) -> None:
        """Move the database counters behind all ids written with absolute values."""
        for generator in self.generators:
            generator.create_alignment_statements(writer)
