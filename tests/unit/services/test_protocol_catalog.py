"""
Unit Tests for Protocol Catalog

Tests loading, invariant validation and fallback selection.
"""

import json

import pytest

from mindshift.domain.enums.protocol_category import ProtocolCategory
from mindshift.domain.exceptions import CatalogValidationError
from mindshift.domain.models.protocol import Protocol
from mindshift.services.catalog.protocol_catalog import ProtocolCatalog


def _protocol(protocol_id: str = "p1", **overrides) -> Protocol:
    fields = dict(
        id=protocol_id,
        category=ProtocolCategory.ANXIETY,
        keywords=("anxious",),
        severity=2,
    )
    fields.update(overrides)
    return Protocol(**fields)


class TestBuiltInCatalog:
    """The packaged clinical protocol set."""

    def test_loads_all_protocols(self, catalog):
        assert len(catalog) == 22
        assert catalog.version == "2024.1"

    def test_crisis_protocols_are_acute(self, catalog):
        crisis = catalog.crisis_protocols()

        assert {p.id for p in crisis} == {"crisis_suicide_intervention", "crisis_self_harm"}
        assert all(p.severity == 5 for p in crisis)

    def test_crisis_protocols_come_first(self, catalog):
        assert catalog.protocols[0].id == "crisis_suicide_intervention"
        assert catalog.protocols[1].id == "crisis_self_harm"

    def test_lookup_by_id(self, catalog):
        assert "anxiety_general" in catalog
        assert catalog.get("anxiety_general").category is ProtocolCategory.ANXIETY
        assert catalog.get("missing") is None

    def test_every_keyword_is_lowercase(self, catalog):
        for protocol in catalog:
            assert all(k == k.lower() for k in protocol.keywords)


class TestCatalogValidation:
    """Invariants enforced at load time."""

    def test_empty_catalog_rejected(self):
        with pytest.raises(CatalogValidationError):
            ProtocolCatalog([])

    def test_duplicate_ids_rejected(self):
        with pytest.raises(CatalogValidationError, match="Duplicate"):
            ProtocolCatalog([_protocol("same"), _protocol("same")])

    def test_empty_keywords_rejected(self):
        with pytest.raises(CatalogValidationError):
            ProtocolCatalog([_protocol(keywords=())])

    def test_uppercase_keyword_rejected(self):
        with pytest.raises(CatalogValidationError, match="lowercase"):
            ProtocolCatalog([_protocol(keywords=("Anxious",))])

    @pytest.mark.parametrize("severity", [0, 6])
    def test_severity_out_of_range_rejected(self, severity):
        with pytest.raises(CatalogValidationError):
            ProtocolCatalog([_protocol(severity=severity)])

    def test_low_severity_crisis_protocol_rejected(self):
        with pytest.raises(CatalogValidationError):
            ProtocolCatalog([_protocol(is_crisis=True, severity=3)])

    def test_from_dict_normalizes_keywords(self):
        catalog = ProtocolCatalog.from_dict({
            "protocols": [
                {
                    "id": "p1",
                    "category": "anxiety",
                    "keywords": ["Anxious", "anxious", "  Panic   Attack "],
                    "severity": 2,
                }
            ]
        })

        assert catalog.get("p1").keywords == ("anxious", "panic attack")

    def test_unknown_category_rejected(self):
        with pytest.raises(CatalogValidationError):
            ProtocolCatalog.from_dict({
                "protocols": [{"id": "p1", "category": "unknown", "keywords": ["x"], "severity": 1}]
            })

    def test_unreadable_file_rejected(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(CatalogValidationError):
            ProtocolCatalog.from_file(path)

    def test_override_file_loaded(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({
            "version": "test",
            "protocols": [_protocol().to_dict()],
            "fallback_responses": ["One", "Two"],
        }), encoding="utf-8")

        catalog = ProtocolCatalog.load(str(path))

        assert catalog.version == "test"
        assert len(catalog) == 1


class TestFallbackResponses:
    """Generic supportive lines for unmatched turns."""

    def test_selected_by_turn_index(self):
        catalog = ProtocolCatalog([_protocol()], fallback_responses=["A", "B", "C"])

        assert catalog.fallback_response(0) == "A"
        assert catalog.fallback_response(4) == "B"

    def test_default_line_when_none_configured(self):
        catalog = ProtocolCatalog([_protocol()])

        assert catalog.fallback_response(7)
