"""FastAPI application entry point of the ruleset RAG pipeline.

Serves semantic search over the indexed rules and transcripts and runs the
ingestion pipeline in-process behind the /index routes.

Usage:
    python -m server.api_app
"""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperTracer import HelperTracer
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.messaging.memory.MessageBusMemory import MessageBusMemory
from shared.stores.sqlite.ContextStoreSqlite import ContextStoreSqlite
from shared.stores.sqlite.DocumentStateStoreSqlite import DocumentStateStoreSqlite
from services.document_pipeline.DocumentPipeline import DocumentPipeline
from services.retrieval.RetrievalService import RetrievalService
from server.error_handlers import register_error_handlers
from server.routers.IndexRouter import router as index_router
from server.routers.SearchRouter import router as search_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    helper_config = HelperConfig(logger=logging)
    tracer = HelperTracer(helper_config)
    app.state.logging = logging
    app.state.helper_config = helper_config

    rag_client = RAGClientManager(helper_config=helper_config).get_client()
    embed_client = EmbedClientManager(helper_config=helper_config).get_client()

    logging.info("Booting all clients...")
    for client in [rag_client, embed_client]:
        await client.boot()
    await check_connections(rag_client, embed_client)
    logging.info("All clients booted successfully.")

    store = DocumentStateStoreSqlite(helper_config=helper_config)
    await store.initialize()
    context_store = ContextStoreSqlite(helper_config=helper_config)
    await context_store.initialize()

    bus = MessageBusMemory(helper_config=helper_config)
    pipeline = DocumentPipeline(
        helper_config=helper_config,
        rag_client=rag_client,
        embed_client=embed_client,
        store=store,
        bus=bus,
        tracer=tracer,
    )
    pipeline.register_consumers()
    await bus.start()

    app.state.store = store
    app.state.bus = bus
    app.state.pipeline = pipeline
    app.state.retrieval_service = RetrievalService(
        helper_config=helper_config,
        rag_client=rag_client,
        embed_client=embed_client,
        store=store,
        context_store=context_store,
        tracer=tracer,
    )

    # while the app is running...
    yield

    # when the app shuts down, stop the workers and close all client connections
    logging.info("Shutting down, stopping workers and closing all clients...")
    await bus.stop()
    for client in [rag_client, embed_client]:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="ruleset_rag",
    description=(
        "Ingests rulebooks and game transcripts into a vector index and serves "
        "semantic search over them. Rules are searched via POST /search/rules, "
        "transcripts via POST /search/conversations. A rescan of the content "
        "directory is triggered via POST /index/scan."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


register_error_handlers(app)
app.include_router(search_router)
app.include_router(index_router)


async def check_connections(rag_client, embed_client) -> None:
    """Check connectivity to both backends on startup.

    Raises:
        TransientInfraError: If the vector index or the embedding model is not reachable.
    """
    await rag_client.do_healthcheck()
    await embed_client.do_healthcheck()


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting ruleset_rag API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", os.getcwd()),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
