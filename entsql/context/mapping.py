"""
Mapping markers for entity models.

Entities are plain pydantic models. The generated id field and any column
overrides are declared with ``typing.Annotated`` metadata:

```python
class Person(BaseModel):
    __tablename__ = "person"

    id: Annotated[Optional[int], GeneratedValue(GenerationType.SEQUENCE, "person_seq")] = None
    name: Annotated[str, Column(unique=True)]
```

The markers are dataclasses, pydantic keeps them untouched in ``FieldInfo.metadata``.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class GenerationType(str, Enum):
    """Strategy used to allocate new primary keys."""
    AUTO = "auto"
    SEQUENCE = "sequence"
    TABLE = "table"
    IDENTITY = "identity"


@dataclass(frozen=True)
class GeneratedValue:
    """Marks the id field of an entity and describes its generator."""
    strategy: GenerationType = GenerationType.AUTO
    # Sequence name or counter row name, defaults are derived from the table
    generator: Optional[str] = None
    allocation_size: Optional[int] = None
    initial_value: int = 1


@dataclass(frozen=True)
class Column:
    """Overrides the column of a field, or declares it as natural key."""
    name: Optional[str] = None
    unique: bool = False
