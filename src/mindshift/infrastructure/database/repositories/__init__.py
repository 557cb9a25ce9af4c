"""Database repositories package."""

from mindshift.infrastructure.database.repositories.base import BaseRepository

__all__ = ["BaseRepository"]
