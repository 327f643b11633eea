"""Entities module.

Each entity has its own package containing:
- entity.py: Domain model
- table.py: Database persistence model
- directory.py / repository.py: Data access layer
"""

from .core.user import (
    InMemoryUserDirectory,
    LocalUser,
    UserDirectory,
    UserEmailTable,
    UserRepository,
    UserTable,
)

__all__ = [
    "LocalUser",
    "UserTable",
    "UserEmailTable",
    "UserDirectory",
    "InMemoryUserDirectory",
    "UserRepository",
]
