"""
Persistence adapters for econrag.

The core treats persistence as a reliable document store with
save / find_by_id / find_all. Two adapters ship:
- InMemoryRepository (default wiring, tests)
- SqlAlchemyRepository (durable, via econrag.db)
"""

from .base import Repository, InMemoryRepository, Repositories
from .sqlalchemy_repo import SqlAlchemyRepository

__all__ = [
    "Repository",
    "InMemoryRepository",
    "Repositories",
    "SqlAlchemyRepository",
]
