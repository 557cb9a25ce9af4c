"""
Protocol Catalog

Static, versioned set of therapeutic response protocols. Loaded once
at startup and never mutated afterwards.

Catalog order matters: it is the final tie-break when two protocols
match a message with equal severity and match count.

CLINICAL_REVIEW_REQUIRED: The built-in protocol set must be reviewed
by mental health professionals before production deployment.
"""

import json
from pathlib import Path
from typing import Iterator, Optional, Sequence

from mindshift.config.logging_config import get_logger
from mindshift.domain.exceptions import CatalogValidationError
from mindshift.domain.models.protocol import Protocol

logger = get_logger(__name__)

BUILT_IN_CATALOG_PATH = Path(__file__).parent / "data" / "protocols.json"

DEFAULT_FALLBACK_RESPONSE = "I'm here with you. Tell me more about what's going on."


class ProtocolCatalog:
    """
    Ordered, immutable protocol collection.

    Usage:
        catalog = ProtocolCatalog.load()
        protocol = catalog.get("anxiety_general")
        reply = catalog.fallback_response(turn_index=3)
    """

    def __init__(
        self,
        protocols: Sequence[Protocol],
        fallback_responses: Sequence[str] = (),
        version: str = "custom",
    ) -> None:
        self._protocols: tuple[Protocol, ...] = tuple(protocols)
        self._fallback_responses: tuple[str, ...] = tuple(
            r for r in fallback_responses if r.strip()
        ) or (DEFAULT_FALLBACK_RESPONSE,)
        self.version = version
        self._validate()
        self._by_id = {p.id: p for p in self._protocols}

    def _validate(self) -> None:
        if not self._protocols:
            raise CatalogValidationError("Catalog contains no protocols")

        seen: set[str] = set()
        for protocol in self._protocols:
            protocol.validate()
            if protocol.id in seen:
                raise CatalogValidationError(
                    f"Duplicate protocol id {protocol.id!r}", field="id"
                )
            seen.add(protocol.id)

    @classmethod
    def from_dict(cls, data: dict) -> "ProtocolCatalog":
        """Build a catalog from the JSON document structure."""
        entries = data.get("protocols")
        if not isinstance(entries, list):
            raise CatalogValidationError("Catalog document has no protocol list")
        return cls(
            protocols=[Protocol.from_dict(entry) for entry in entries],
            fallback_responses=data.get("fallback_responses", ()),
            version=str(data.get("version", "custom")),
        )

    @classmethod
    def from_file(cls, path: str | Path) -> "ProtocolCatalog":
        """
        Load a catalog from a JSON file.

        Raises:
            CatalogValidationError: If the file is unreadable or invalid
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise CatalogValidationError(f"Cannot read catalog {path}: {e}") from e

        catalog = cls.from_dict(data)
        logger.info(
            "Loaded protocol catalog",
            path=str(path),
            version=catalog.version,
            protocol_count=len(catalog),
        )
        return catalog

    @classmethod
    def load(cls, path: Optional[str] = None) -> "ProtocolCatalog":
        """Load the override catalog if given, otherwise the built-in one."""
        return cls.from_file(path or BUILT_IN_CATALOG_PATH)

    def __len__(self) -> int:
        return len(self._protocols)

    def __iter__(self) -> Iterator[Protocol]:
        return iter(self._protocols)

    def __contains__(self, protocol_id: object) -> bool:
        return protocol_id in self._by_id

    @property
    def protocols(self) -> tuple[Protocol, ...]:
        return self._protocols

    def get(self, protocol_id: str) -> Optional[Protocol]:
        return self._by_id.get(protocol_id)

    def crisis_protocols(self) -> list[Protocol]:
        return [p for p in self._protocols if p.is_crisis]

    def fallback_response(self, turn_index: int) -> str:
        """Deterministic generic supportive line for unmatched turns."""
        return self._fallback_responses[max(turn_index, 0) % len(self._fallback_responses)]
