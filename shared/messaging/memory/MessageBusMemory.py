"""In-process message bus on top of an asyncio queue and a pool of worker tasks."""

import asyncio
from dataclasses import dataclass

from pydantic import BaseModel

from shared.helper.HelperConfig import HelperConfig
from shared.messaging.MessageBusInterface import DeadLetter, MessageBusInterface
from shared.models.errors import DataIntegrityError


@dataclass
class _Envelope:
    message: BaseModel
    attempt: int = 1


class MessageBusMemory(MessageBusInterface):
    """Single-process bus.

    Failed deliveries are retried with a linear backoff up to BUS_MAX_ATTEMPTS.
    DataIntegrityError is not retried: the message goes straight to the
    dead-letter list.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._worker_count = int(helper_config.get_number_val("BUS_WORKERS", default=4))
        self._max_attempts = int(helper_config.get_number_val("BUS_MAX_ATTEMPTS", default=3))
        self._retry_delay = float(helper_config.get_number_val("BUS_RETRY_DELAY_SECONDS", default=1))
        self._queue: asyncio.Queue[_Envelope] = asyncio.Queue()
        self._workers: list[asyncio.Task] = []

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def publish(self, message: BaseModel) -> None:
        # fail fast on wiring errors instead of losing the message later
        self.get_handler(type(message))
        await self._queue.put(_Envelope(message=message))

    async def start(self) -> None:
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._work(i), name=f"bus-worker-{i}")
            for i in range(self._worker_count)
        ]
        self.logging.info("Message bus started with %d worker(s).", self._worker_count)

    async def join(self) -> None:
        await self._queue.join()

    async def stop(self) -> None:
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        self.logging.info("Message bus stopped.")

    ##########################################
    ################ DELIVERY ################
    ##########################################

    async def _work(self, worker_id: int) -> None:
        while True:
            envelope = await self._queue.get()
            try:
                await self._deliver(envelope)
            finally:
                self._queue.task_done()

    async def _deliver(self, envelope: _Envelope) -> None:
        message_type = type(envelope.message)
        handler = self.get_handler(message_type)
        try:
            await handler(envelope.message)
        except asyncio.CancelledError:
            raise
        except DataIntegrityError as exc:
            self._dead_letter(envelope, exc)
        except Exception as exc:
            if envelope.attempt >= self._max_attempts:
                self._dead_letter(envelope, exc)
                return
            self.logging.warning(
                "Delivery of %s failed (attempt %d/%d): %s. Retrying.",
                message_type.__name__, envelope.attempt, self._max_attempts, exc,
            )
            await asyncio.sleep(self._retry_delay * envelope.attempt)
            # re-queued before task_done(), so join() keeps waiting for the retry
            self._queue.put_nowait(_Envelope(message=envelope.message, attempt=envelope.attempt + 1))

    def _dead_letter(self, envelope: _Envelope, exc: Exception) -> None:
        message_type = type(envelope.message).__name__
        self.logging.error(
            "Message %s dead-lettered after %d attempt(s): %s: %s",
            message_type, envelope.attempt, type(exc).__name__, exc,
        )
        self._dead_letters.append(
            DeadLetter(
                message_type=message_type,
                message=envelope.message.model_dump(mode="json"),
                attempts=envelope.attempt,
                error=f"{type(exc).__name__}: {exc}",
            )
        )
