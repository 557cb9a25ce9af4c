"""
Responder Directory

The directory of human responders is an external collaborator. The
triage core reads it to pick a responder and marks responders busy
when it assigns them.
"""

import dataclasses
from abc import ABC, abstractmethod
from typing import Iterable

from mindshift.config.logging_config import get_logger
from mindshift.domain.enums.lifecycle import ResponderAvailability
from mindshift.domain.exceptions import ResponderNotFoundError
from mindshift.domain.models.handoff import Responder

logger = get_logger(__name__)


class ResponderDirectory(ABC):
    """
    Abstract responder directory.

    Implementations raise UpstreamUnavailable when the backing
    directory cannot be reached.
    """

    @abstractmethod
    async def list_responders(self) -> list[Responder]:
        """Return responders in directory order."""

    @abstractmethod
    async def set_availability(
        self,
        responder_id: str,
        availability: ResponderAvailability,
    ) -> Responder:
        """Update a responder's availability and return the new entry."""


class InMemoryResponderDirectory(ResponderDirectory):
    """Ordered, dict-backed directory for development and tests."""

    def __init__(self, responders: Iterable[Responder] = ()) -> None:
        self._responders: dict[str, Responder] = {}
        for responder in responders:
            self.add(responder)

    def add(self, responder: Responder) -> None:
        self._responders[responder.id] = responder

    def get(self, responder_id: str) -> Responder:
        responder = self._responders.get(responder_id)
        if responder is None:
            raise ResponderNotFoundError(responder_id)
        return responder

    async def list_responders(self) -> list[Responder]:
        return list(self._responders.values())

    async def set_availability(
        self,
        responder_id: str,
        availability: ResponderAvailability,
    ) -> Responder:
        updated = dataclasses.replace(self.get(responder_id), availability=availability)
        self._responders[responder_id] = updated
        logger.debug(
            "Responder availability changed",
            responder_id=responder_id,
            availability=availability.value,
        )
        return updated
