# conftest.py
"""
Common fixtures for the entsql tests.
Provides test entity models, contexts for the dialects and SQLite databases.
"""
from typing import Annotated, List, Optional

import pytest
from pydantic import BaseModel
from sqlalchemy import create_engine, text

from entsql.context.dialect import GeneratorDialect, PostgresDialect, SqliteDialect
from entsql.context.generation_context import GenerationContext
from entsql.context.mapping import Column, GeneratedValue, GenerationType
from entsql.statements.statements import EntityStatement
from entsql.statements.writer import StatementsWriter


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "database: tests that execute SQL in SQLite")


# ========================================================================
# Test entity models
# ========================================================================

class Country(BaseModel):
    """Entity with a natural key, usually existing in the database already."""
    __tablename__ = "country"

    id: Annotated[Optional[int], GeneratedValue(GenerationType.SEQUENCE, "country_seq")] = None
    code: Annotated[str, Column(unique=True)]
    name: str = ""


class Person(BaseModel):
    """Entity with a sequence id and a many-to-one reference."""
    __tablename__ = "person"

    id: Annotated[Optional[int], GeneratedValue(GenerationType.SEQUENCE, "person_seq")] = None
    name: str
    country: Optional[Country] = None
    nicknames: List[str] = []


class Batch(BaseModel):
    """Entity with a pooled sequence."""
    id: Annotated[Optional[int], GeneratedValue(GenerationType.SEQUENCE, "batch_seq", allocation_size=10)] = None
    label: str = ""


class Account(BaseModel):
    """Entity with an identity column."""
    __tablename__ = "account"

    id: Annotated[Optional[int], GeneratedValue(GenerationType.IDENTITY)] = None
    name: str


class Address(BaseModel):
    """Identity entity referencing another identity entity."""
    __tablename__ = "address"

    id: Annotated[Optional[int], GeneratedValue(GenerationType.IDENTITY)] = None
    street: str
    account: Optional[Account] = None


class Tag(BaseModel):
    """Entity with ids from a counter table."""
    __tablename__ = "tag"

    id: Annotated[Optional[int], GeneratedValue(GenerationType.TABLE)] = None
    label: str


class Counter(BaseModel):
    """Entity with a non optional id, 0 means "no id"."""
    id: Annotated[int, GeneratedValue(GenerationType.SEQUENCE, "counter_seq")] = 0
    name: str = ""


class Node(BaseModel):
    """Entity referencing itself."""
    id: Annotated[Optional[int], GeneratedValue(GenerationType.SEQUENCE, "node_seq")] = None
    name: str
    parent: Optional["Node"] = None


# ========================================================================
# Helpers
# ========================================================================

class RecordingWriter(StatementsWriter):
    """Collects the rendered statements."""

    def __init__(self, dialect: GeneratorDialect) -> None:
        self.dialect = dialect
        self.statements: List[EntityStatement] = []

    @property
    def sql(self) -> List[str]:
        return [normalize(self.dialect.create_sql(statement)) for statement in self.statements]

    def write_statement(self, statement: EntityStatement) -> None:
        self.statements.append(statement)

    def write_comment(self, comment: str) -> None:
        pass

    def write_section_separator(self) -> None:
        pass


def normalize(sql: str) -> str:
    """Collapse the line breaks that SQLAlchemy puts into selects."""
    return " ".join(sql.split())


# ========================================================================
# Fixtures
# ========================================================================

@pytest.fixture
def relative_context() -> GenerationContext:
    """Script mode for PostgreSQL."""
    return GenerationContext(dialect=PostgresDialect(), write_relative_ids=True)


@pytest.fixture
def absolute_context() -> GenerationContext:
    """Absolute ids for PostgreSQL."""
    return GenerationContext(dialect=PostgresDialect())


@pytest.fixture
def sqlite_context() -> GenerationContext:
    return GenerationContext(dialect=SqliteDialect())


SCHEMA = [
    "CREATE TABLE country (id INTEGER PRIMARY KEY, code TEXT UNIQUE NOT NULL, name TEXT)",
    "CREATE TABLE person (id INTEGER PRIMARY KEY, name TEXT NOT NULL, country_id INTEGER REFERENCES country (id))",
    "CREATE TABLE account (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL)",
    "CREATE TABLE address (id INTEGER PRIMARY KEY AUTOINCREMENT, street TEXT NOT NULL, "
    "account_id INTEGER REFERENCES account (id))",
    "CREATE TABLE tag (id INTEGER PRIMARY KEY, label TEXT NOT NULL)",
    "CREATE TABLE hibernate_sequences (sequence_name TEXT PRIMARY KEY, next_val INTEGER NOT NULL)",
]


@pytest.fixture
def engine(tmp_path):
    """SQLite database file with the tables of the test entities."""
    engine = create_engine(f"sqlite:///{tmp_path / 'entsql.db'}")
    with engine.begin() as conn:
        for statement in SCHEMA:
            conn.execute(text(statement))
    yield engine
    engine.dispose()


@pytest.fixture
def empty_engine(tmp_path):
    """SQLite database file without any tables."""
    engine = create_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    yield engine
    engine.dispose()


def query(engine, sql: str) -> list:
    with engine.connect() as conn:
        return [tuple(row) for row in conn.execute(text(sql)).all()]
