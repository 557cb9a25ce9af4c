"""Archive persistence package."""

from mindshift.infrastructure.archive.archive_sink import (
    ArchiveSink,
    DatabaseArchiveSink,
    InMemoryArchiveSink,
)

__all__ = [
    "ArchiveSink",
    "InMemoryArchiveSink",
    "DatabaseArchiveSink",
]
