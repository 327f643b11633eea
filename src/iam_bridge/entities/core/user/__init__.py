"""User entity module.

- LocalUser: Domain entity for a local account
- UserTable / UserEmailTable: Database persistence models
- UserDirectory: Directory store interface, with in-memory and SQL implementations
"""

from .entity import LocalUser, is_valid_email, normalize_email
from .table import UserEmailTable, UserTable
from .directory import InMemoryUserDirectory, UserDirectory
from .repository import UserRepository

__all__ = [
    "LocalUser",
    "UserTable",
    "UserEmailTable",
    "UserDirectory",
    "InMemoryUserDirectory",
    "UserRepository",
    "is_valid_email",
    "normalize_email",
]
