"""
Id generators, one instance per physical counter.
"""
from .base import IdGenerator
from .identity import IdentityGenerator
from .sequence import SequenceIdGenerator
from .table import TableIdGenerator

__all__ = ["IdGenerator", "IdentityGenerator", "SequenceIdGenerator", "TableIdGenerator"]
