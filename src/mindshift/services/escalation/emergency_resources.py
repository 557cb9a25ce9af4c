"""
Crisis Resources by Jurisdiction

Hotlines and emergency numbers attached to triage outcomes while a
crisis alert is open, to expired handoffs, and to the emergency
dispatch on escalation.

LEGAL_REVIEW_REQUIRED: Every number listed here must be verified for
the jurisdiction before it is shown to a user.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from mindshift.config.logging_config import get_logger

logger = get_logger(__name__)

INTERNATIONAL = "INTL"


@dataclass(frozen=True)
class CrisisResource:
    """One hotline, text line, website or emergency number."""

    name: str
    resource_type: str
    contact: str
    description: str = ""
    available_24_7: bool = True

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": self.resource_type,
            "contact": self.contact,
            "description": self.description,
            "available_24_7": self.available_24_7,
        }


@dataclass(frozen=True)
class JurisdictionResources:
    country_code: str
    country_name: str
    emergency_number: str = ""
    resources: tuple[CrisisResource, ...] = ()

    def all_resources(self) -> list[CrisisResource]:
        """Listed resources, with the general emergency number last."""
        listed = list(self.resources)
        if self.emergency_number:
            listed.append(CrisisResource(
                name="Emergency Services",
                resource_type="emergency",
                contact=self.emergency_number,
                description="Immediate danger",
            ))
        return listed


def _hotline(name: str, contact: str, description: str) -> CrisisResource:
    return CrisisResource(name, "hotline", contact, description)


def _text_line(name: str, contact: str, description: str) -> CrisisResource:
    return CrisisResource(name, "text", contact, description)


def _website(name: str, url: str, description: str) -> CrisisResource:
    return CrisisResource(name, "website", url, description)


# LEGAL_REVIEW_REQUIRED
BUILT_IN_JURISDICTIONS: tuple[JurisdictionResources, ...] = (
    JurisdictionResources("US", "United States", "911", (
        _hotline("988 Suicide & Crisis Lifeline", "988", "24/7 call or text crisis support"),
        _text_line("Crisis Text Line", "Text HOME to 741741", "Text-based crisis support"),
    )),
    JurisdictionResources("GB", "United Kingdom", "999", (
        _hotline("Samaritans", "116 123", "Emotional support for anyone in distress"),
        _text_line("SHOUT", "Text SHOUT to 85258", "Text-based mental health support"),
    )),
)

INTERNATIONAL_RESOURCES = JurisdictionResources(INTERNATIONAL, "International", "", (
    _website(
        "International Association for Suicide Prevention",
        "https://www.iasp.info/resources/Crisis_Centres/",
        "Directory of crisis centres worldwide",
    ),
    _website("Befrienders Worldwide", "https://www.befrienders.org/", "Emotional support centres"),
))


def parse_jurisdiction(country_code: str, entry: Mapping[str, Any]) -> JurisdictionResources:
    """
    Build one jurisdiction from its config entry.

    Raises:
        TypeError: If a resource entry has missing or unknown fields
        AttributeError: If the entry is not a mapping
    """
    code = country_code.upper()
    return JurisdictionResources(
        country_code=code,
        country_name=entry.get("country_name", code),
        emergency_number=entry.get("emergency_number", ""),
        resources=tuple(CrisisResource(**item) for item in entry.get("resources", [])),
    )


class CrisisResourceResolver:
    """
    Looks up crisis resources by ISO country code.

    An optional JSON file extends or overrides the built-in table; it
    maps country codes to ``{country_name, emergency_number, resources}``.
    A file that cannot be read leaves the built-ins in place. Unknown
    countries fall back to the international directories.

    Usage:
        resolver = CrisisResourceResolver(settings.escalation.crisis_resources_path)
        resolver.resources_for("us").all_resources()
    """

    def __init__(self, config_path: Optional[Union[str, Path]] = None) -> None:
        self._by_code = {j.country_code: j for j in BUILT_IN_JURISDICTIONS}
        if config_path:
            self._by_code.update(self._read_overrides(Path(config_path)))

    @staticmethod
    def _read_overrides(path: Path) -> dict[str, JurisdictionResources]:
        if not path.exists():
            logger.warning("Crisis resources file not found", path=str(path))
            return {}
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            overrides = {code.upper(): parse_jurisdiction(code, entry) for code, entry in raw.items()}
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.error("Crisis resources file rejected", path=str(path), error=str(e))
            return {}

        logger.info("Crisis resources loaded", path=str(path), jurisdictions=sorted(overrides))
        return overrides

    def resources_for(self, country_code: Optional[str]) -> JurisdictionResources:
        found = self._by_code.get((country_code or "").upper())
        if found is None:
            logger.warning("No crisis resources for jurisdiction", country_code=country_code)
            return INTERNATIONAL_RESOURCES
        return found

    def list_supported_countries(self) -> list[str]:
        return sorted(self._by_code)
