"""Protocol catalog package."""

from mindshift.services.catalog.protocol_catalog import (
    BUILT_IN_CATALOG_PATH,
    ProtocolCatalog,
)

__all__ = [
    "ProtocolCatalog",
    "BUILT_IN_CATALOG_PATH",
]
