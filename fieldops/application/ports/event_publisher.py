"""Port interface for assignment domain events."""

from abc import ABC, abstractmethod

from fieldops.domain.events import AssignmentEvent


class EventPublisher(ABC):
    @abstractmethod
    async def publish(self, event: AssignmentEvent) -> None:
        """Hand an event to downstream collaborators (contracts, executions, notifications)."""
        ...
