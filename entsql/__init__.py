"""
entsql - SQL statements for graphs of pydantic entities.

Writes inserts for new entities and resolves references to new, known and
unknown rows, either as portable scripts with relative ids or directly
against a database connection.
"""
