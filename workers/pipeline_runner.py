"""Pipeline runner entry point.

Boots the clients, starts the in-process workers and scans the content
directory. With SCAN_INTERVAL_SECONDS=0 it scans once, waits until every
queued message is handled and exits; otherwise it rescans periodically until
interrupted.

Usage:
    python -m workers.pipeline_runner
"""

import asyncio
import signal

from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperTracer import HelperTracer
from shared.logging.logging_setup import setup_logging
from shared.messaging.memory.MessageBusMemory import MessageBusMemory
from shared.stores.sqlite.DocumentStateStoreSqlite import DocumentStateStoreSqlite
from services.document_pipeline.DocumentPipeline import DocumentPipeline


async def run_pipeline(config: HelperConfig, cancel_event: asyncio.Event) -> int:
    """Run the ingestion pipeline until done or cancelled.

    Returns:
        int: Number of dead-lettered messages.
    """
    logger = config.get_logger()
    interval = float(config.get_number_val("SCAN_INTERVAL_SECONDS", default=0))

    rag_client = RAGClientManager(helper_config=config).get_client()
    embed_client = EmbedClientManager(helper_config=config).get_client()
    bus = MessageBusMemory(helper_config=config)

    try:
        # both backends are required
        for client in [embed_client, rag_client]:
            await client.boot()
            await client.do_healthcheck()

        store = DocumentStateStoreSqlite(helper_config=config)
        await store.initialize()

        pipeline = DocumentPipeline(
            helper_config=config,
            rag_client=rag_client,
            embed_client=embed_client,
            store=store,
            bus=bus,
            tracer=HelperTracer(config),
        )
        pipeline.register_consumers()
        await bus.start()

        while not cancel_event.is_set():
            await pipeline.change_detector.scan_and_enqueue(cancel_event=cancel_event)
            await bus.join()
            if interval <= 0:
                break
            try:
                await asyncio.wait_for(cancel_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
    finally:
        await bus.stop()
        await embed_client.close()
        await rag_client.close()

    dead_letters = bus.get_dead_letters()
    if dead_letters:
        logger.warning("%d message(s) ended in the dead-letter list.", len(dead_letters))
    return len(dead_letters)


async def main() -> None:
    """Run the pipeline with SIGINT/SIGTERM wired to a cooperative stop."""
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    cancel_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancel_event.set)
        except NotImplementedError:
            # no signal handlers on Windows event loops
            pass

    await run_pipeline(config, cancel_event)


if __name__ == "__main__":
    asyncio.run(main())
