from abc import ABC, abstractmethod

from shared.models.search import ContextMessage


class ContextStoreInterface(ABC):
    """Read access to the relational store that owns game transcripts."""

    @abstractmethod
    async def initialize(self) -> None:
        pass

    @abstractmethod
    async def get_message(self, message_id: int) -> ContextMessage | None:
        """Return a message by id, or None if it does not exist."""
        pass

    @abstractmethod
    async def get_message_neighbors(self, message: ContextMessage) -> tuple[ContextMessage | None, ContextMessage | None]:
        """Return the previous and next message of the same game, ordered by creation time."""
        pass
