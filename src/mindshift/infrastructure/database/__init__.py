"""
Database infrastructure components.
"""

from mindshift.infrastructure.database.connection import Base, DatabaseManager

__all__ = [
    "Base",
    "DatabaseManager",
]
