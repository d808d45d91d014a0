"""
Tests for writing SQL scripts.
"""
import io

import pytest

from entsql.context.generation_context import GenerationContext
from entsql.context.dialect import MySqlDialect
from entsql.script import ScriptEntitySqlGenerator
from conftest import Account, Address, Country, Node, Person, normalize


def statements(output: io.StringIO):
    return [normalize(line) for line in output.getvalue().splitlines() if line and not line.startswith("--")]


class TestRelativeScript:

    def test_new_reference_is_written_first(self, relative_context):
        output = io.StringIO()
        person = Person(name="Ann", country=Country(code="DE", name="Germany"))

        with ScriptEntitySqlGenerator(output, relative_context) as generator:
            generator.write(person)

        assert statements(output) == [
            "INSERT INTO country (id, code, name) VALUES (nextval('country_seq'), 'DE', 'Germany');",
            "INSERT INTO person (id, name, country_id) VALUES (nextval('person_seq'), 'Ann', currval('country_seq'));",
        ]

    def test_reference_by_unique_property(self, relative_context):
        output = io.StringIO()
        country = Country(code="DE")
        person = Person(name="Ann", country=country)

        with ScriptEntitySqlGenerator(output, relative_context) as generator:
            generator.mark_existing_entity(country)
            generator.write(person)

        assert statements(output) == [
            "INSERT INTO person (id, name, country_id) VALUES "
            "(nextval('person_seq'), 'Ann', (SELECT id FROM country WHERE code = 'DE'));",
        ]

    def test_reference_by_known_id(self, relative_context):
        output = io.StringIO()
        country = Country(code="DE")
        person = Person(name="Ann", country=country)

        with ScriptEntitySqlGenerator(output, relative_context) as generator:
            generator.mark_existing_entity(country, 7)
            generator.write(person)

        assert statements(output)[0].endswith("'Ann', 7);")

    def test_identity_reference(self, relative_context):
        output = io.StringIO()
        address = Address(street="Main Street", account=Account(name="a"))

        with ScriptEntitySqlGenerator(output, relative_context) as generator:
            generator.write(address)

        assert statements(output) == [
            "INSERT INTO account (name) VALUES ('a');",
            "INSERT INTO address (street, account_id) VALUES ('Main Street', (SELECT max(id) FROM account));",
        ]

    def test_no_alignment(self, relative_context):
        output = io.StringIO()
        with ScriptEntitySqlGenerator(output, relative_context) as generator:
            generator.write(Person(name="Ann"))
        assert len(statements(output)) == 1


class TestAbsoluteScript:

    def test_literal_ids_and_alignment(self, absolute_context):
        output = io.StringIO()
        first = Person(name="Ann")
        second = Person(name="Bob")

        with ScriptEntitySqlGenerator(output, absolute_context) as generator:
            generator.write_all([first, second])

        assert statements(output) == [
            "INSERT INTO person (id, name, country_id) VALUES (1, 'Ann', NULL);",
            "INSERT INTO person (id, name, country_id) VALUES (2, 'Bob', NULL);",
            "ALTER SEQUENCE person_seq RESTART WITH 3;",
        ]
        assert (first.id, second.id) == (1, 2)

    def test_mysql_without_sequences(self):
        context = GenerationContext(dialect=MySqlDialect())
        output = io.StringIO()

        with ScriptEntitySqlGenerator(output, context) as generator:
            generator.write(Person(name="Ann"))

        lines = statements(output)
        assert lines[0] == "INSERT INTO person (id, name, country_id) VALUES (1, 'Ann', NULL);"
        assert lines[1].startswith("INSERT INTO hibernate_sequences (sequence_name, next_val) SELECT 'person_seq', 1")
        assert lines[2].startswith("UPDATE hibernate_sequences SET next_val=2")


class TestWriting:

    def test_entity_written_once(self, relative_context):
        output = io.StringIO()
        person = Person(name="Ann")
        with ScriptEntitySqlGenerator(output, relative_context) as generator:
            generator.write(person)
            generator.write(person)
            assert generator.statements_count == 1

    def test_comments_and_separators(self, relative_context):
        output = io.StringIO()
        with ScriptEntitySqlGenerator(output, relative_context) as generator:
            generator.write_comment("People\nof the world")
            generator.write(Person(name="Ann"))
            generator.write_section_separator()

        lines = output.getvalue().split("\n")
        assert lines[:2] == ["-- People", "-- of the world"]
        assert lines[3] == ""

    def test_circular_reference(self, relative_context):
        first = Node(name="a")
        second = Node(name="b", parent=first)
        first.parent = second

        generator = ScriptEntitySqlGenerator(io.StringIO(), relative_context)
        with pytest.raises(ValueError, match="Circular reference"):
            generator.write(first)

    def test_write_all_discovers_first(self, relative_context):
        events = []

        class Listener:
            def found_entity_class(self, entity_class):
                events.append(entity_class.entity_type)

            def found_generator(self, generator):
                pass

        output = io.StringIO()
        relative_context.add_context_model_listener(Listener())
        person = Person(name="Ann", country=Country(code="DE"))

        class RecordingScript(ScriptEntitySqlGenerator):
            def write_statement(self, statement):
                events.append("statement")
                super().write_statement(statement)

        with RecordingScript(output, relative_context) as generator:
            generator.write_all([person])

        assert events == [Person, Country, "statement", "statement"]

    def test_abort_on_failure(self, relative_context, caplog):
        output = io.StringIO()
        with pytest.raises(RuntimeError):
            with ScriptEntitySqlGenerator(output, relative_context) as generator:
                generator.write(Person(name="Ann"))
                raise RuntimeError("stop")
        assert "Generation aborted" in caplog.text


class TestLongChains:

    @pytest.fixture
    def chain(self):
        nodes = [Node(name="n0")]
        for index in range(1, 2000):
            nodes.append(Node(name=f"n{index}", parent=nodes[-1]))
        return nodes

    def test_tail_of_chain(self, relative_context, chain):
        output = io.StringIO()

        with ScriptEntitySqlGenerator(output, relative_context) as generator:
            generator.write(chain[-1])

        lines = statements(output)
        assert len(lines) == 2000
        assert lines[0] == "INSERT INTO node (id, name, parent_id) VALUES (nextval('node_seq'), 'n0', NULL);"
        assert lines[-1] == (
            "INSERT INTO node (id, name, parent_id) VALUES (nextval('node_seq'), 'n1999', currval('node_seq') - 1);")
        assert [node.id for node in chain[:3]] == [1, 2, 3]

    def test_discover_chain(self, relative_context, chain):
        relative_context.discover([chain[-1]])
        assert [c.entity_type for c in relative_context.entity_classes] == [Node]


def test_shared_reference_written_once(relative_context):
    output = io.StringIO()
    country = Country(code="DE")
    people = [Person(name="Ann", country=country), Person(name="Bob", country=country)]

    with ScriptEntitySqlGenerator(output, relative_context) as generator:
        for person in people:
            generator.write(person)

    lines = statements(output)
    assert len(lines) == 3
    assert lines[0].startswith("INSERT INTO country")
    assert lines[2].endswith("'Bob', currval('country_seq'));")


def test_close_twice(absolute_context):
    output = io.StringIO()

    with ScriptEntitySqlGenerator(output, absolute_context) as generator:
        generator.write(Person(name="Ann"))
        generator.close()

    assert statements(output) == [
        "INSERT INTO person (id, name, country_id) VALUES (1, 'Ann', NULL);",
        "ALTER SEQUENCE person_seq RESTART WITH 2;",
    ]
