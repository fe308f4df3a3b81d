from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

from pydantic import BaseModel

from shared.helper.HelperConfig import HelperConfig

MessageHandler = Callable[[Any], Awaitable[Any]]


class DeadLetter(BaseModel):
    """A message that exhausted its delivery attempts."""

    message_type: str
    message: dict[str, Any]
    attempts: int
    error: str


class MessageBusInterface(ABC):
    """Delivers pipeline messages to exactly one handler per message type, at least once."""

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self._handlers: dict[type[BaseModel], MessageHandler] = {}
        self._dead_letters: list[DeadLetter] = []

    def subscribe(self, message_type: type[BaseModel], handler: MessageHandler) -> None:
        """Register the consumer of a message type.

        Raises:
            ValueError: If the message type already has a consumer.
        """
        if message_type in self._handlers:
            raise ValueError(f"Message type '{message_type.__name__}' already has a consumer.")
        self._handlers[message_type] = handler

    def get_handler(self, message_type: type[BaseModel]) -> MessageHandler:
        """
        Raises:
            ValueError: If nobody consumes the message type.
        """
        handler = self._handlers.get(message_type)
        if handler is None:
            raise ValueError(f"No consumer subscribed for message type '{message_type.__name__}'.")
        return handler

    def get_dead_letters(self) -> list[DeadLetter]:
        return list(self._dead_letters)

    @abstractmethod
    async def publish(self, message: BaseModel) -> None:
        """Hand a message to the delivery layer."""
        pass

    @abstractmethod
    async def start(self) -> None:
        """Start consuming."""
        pass

    @abstractmethod
    async def join(self) -> None:
        """Wait until every published message (including retries) was handled or dead-lettered."""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Stop consuming. In-flight handlers are cancelled."""
        pass
