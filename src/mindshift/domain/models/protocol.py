"""
Protocol Domain Model

A Protocol pairs trigger keywords, a clinical category and a severity
with a therapeutic response template. Protocols are immutable and owned
by the Protocol Catalog.

CLINICAL_REVIEW_REQUIRED: Protocol content and severities must be
reviewed by mental health professionals.
"""

from dataclasses import dataclass, field
from typing import Any

from mindshift.domain.enums.protocol_category import ProtocolCategory, RiskLevel
from mindshift.domain.exceptions import CatalogValidationError


@dataclass(frozen=True)
class Protocol:
    """
    Catalog entry describing one therapeutic response protocol.

    Attributes:
        id: Unique identifier across the catalog
        category: Clinical category
        keywords: Lowercase trigger phrases, in declaration order
        severity: 1-5, 5 = acute crisis
        response_template: Primary therapeutic response
        technique: Technique label (CBT, DBT, grounding, ...)
        follow_up_prompt: Continued engagement prompt
        suggested_tools: Ordered list of suggested app tools
        is_crisis: True iff a match must trigger escalation
    """

    id: str
    category: ProtocolCategory
    keywords: tuple[str, ...]
    severity: int
    response_template: str = ""
    technique: str = ""
    follow_up_prompt: str = ""
    suggested_tools: tuple[str, ...] = field(default_factory=tuple)
    is_crisis: bool = False

    def validate(self) -> None:
        """
        Check the per-protocol invariants.

        Raises:
            CatalogValidationError: If any invariant is violated
        """
        if not self.id or not self.id.strip():
            raise CatalogValidationError("Protocol id must be non-empty", field="id")
        if not self.keywords:
            raise CatalogValidationError(
                f"Protocol {self.id} has no keywords", field="keywords"
            )
        for keyword in self.keywords:
            if not keyword.strip():
                raise CatalogValidationError(
                    f"Protocol {self.id} has a blank keyword", field="keywords"
                )
            if keyword != keyword.lower():
                raise CatalogValidationError(
                    f"Protocol {self.id} keyword {keyword!r} is not lowercase",
                    field="keywords",
                )
        if not RiskLevel.MILD <= self.severity <= RiskLevel.ACUTE:
            raise CatalogValidationError(
                f"Protocol {self.id} severity {self.severity} outside 1-5",
                field="severity",
            )
        if self.is_crisis and self.severity < RiskLevel.HIGH:
            raise CatalogValidationError(
                f"Crisis protocol {self.id} must have severity >= {int(RiskLevel.HIGH)}",
                field="severity",
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Protocol":
        """
        Build a protocol from a catalog JSON entry.

        Keywords are lowercased and de-duplicated preserving order.
        """
        raw_keywords = data.get("keywords") or []
        keywords: list[str] = []
        for keyword in raw_keywords:
            normalized = " ".join(str(keyword).lower().split())
            if normalized not in keywords:
                keywords.append(normalized)

        try:
            category = ProtocolCategory(data["category"])
        except (KeyError, ValueError) as exc:
            raise CatalogValidationError(
                f"Protocol {data.get('id')!r} has invalid category", field="category"
            ) from exc

        return cls(
            id=str(data.get("id", "")),
            category=category,
            keywords=tuple(keywords),
            severity=int(data.get("severity", 0)),
            response_template=data.get("response_template", ""),
            technique=data.get("technique", ""),
            follow_up_prompt=data.get("follow_up_prompt", ""),
            suggested_tools=tuple(data.get("suggested_tools", ())),
            is_crisis=bool(data.get("is_crisis", False)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category.value,
            "keywords": list(self.keywords),
            "severity": self.severity,
            "response_template": self.response_template,
            "technique": self.technique,
            "follow_up_prompt": self.follow_up_prompt,
            "suggested_tools": list(self.suggested_tools),
            "is_crisis": self.is_crisis,
        }
