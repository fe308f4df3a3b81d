"""Shared fixtures: config, tracer, temp SQLite stores and in-memory fakes of the backends."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

import pytest
import pytest_asyncio

from shared.clients.rag.models.SearchHit import SearchHit
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperTracer import HelperTracer
from shared.logging.logging_setup import ColorLogger
from shared.messaging.MessageBusInterface import MessageBusInterface
from shared.models.errors import EmbeddingDimensionError
from shared.stores.sqlite.ContextStoreSqlite import ContextStoreSqlite
from shared.stores.sqlite.DocumentStateStoreSqlite import DocumentStateStoreSqlite

EMBED_DIMENSION = 4


class FakeEmbedClient:
    """Deterministic embeddings derived from the text hash."""

    def __init__(self, dimension: int = EMBED_DIMENSION):
        self.dimension = dimension
        self.calls: list[list[str]] = []
        self.embed_distance = "Cosine"

    def vector_for(self, text: str) -> list[float]:
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [digest[i] / 255 + 0.01 for i in range(self.dimension)]

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        texts = [texts] if isinstance(texts, str) else texts
        self.calls.append(list(texts))
        return [self.vector_for(t) for t in texts]

    async def do_embed_one(self, text: str) -> list[float]:
        return (await self.do_embed([text]))[0]


class FakeRagClient:
    """In-memory vector index with exact-match payload filters."""

    def __init__(self):
        self.collections: dict[str, dict] = {}
        self.search_calls: list[dict] = []
        self.deleted: list[int] = []

    async def do_ensure_collection(self, collection: str, dimension: int, distance: str = "Cosine") -> bool:
        existing = self.collections.get(collection)
        if existing is not None:
            if existing["dimension"] != dimension:
                raise EmbeddingDimensionError(collection, existing["dimension"], dimension)
            return False
        self.collections[collection] = {"dimension": dimension, "points": {}}
        return True

    async def get_collection_dimension(self, collection: str) -> int | None:
        existing = self.collections.get(collection)
        return existing["dimension"] if existing else None

    async def do_upsert_points(self, collection: str, points: list[VectorPoint]) -> None:
        for point in points:
            self.collections[collection]["points"][point.point_id] = point

    async def do_delete_points(self, collection: str, point_ids: list[int]) -> None:
        self.deleted.extend(point_ids)
        for point_id in point_ids:
            self.collections.get(collection, {}).get("points", {}).pop(point_id, None)

    async def do_search(self, collection: str, vector: list[float], filters: dict[str, str] | None = None, limit: int = 5) -> list[SearchHit]:
        self.search_calls.append({"collection": collection, "vector": vector, "filters": filters, "limit": limit})
        hits = []
        for point in self.collections[collection]["points"].values():
            if filters and any(point.payload.get(k) != v for k, v in filters.items()):
                continue
            hits.append(SearchHit(point_id=point.point_id, score=1.0 - 0.1 * len(hits), payload=point.payload))
        return hits[:limit]

    def points(self, collection: str) -> list[VectorPoint]:
        return list(self.collections.get(collection, {}).get("points", {}).values())


class RecordingBus(MessageBusInterface):
    """Collects published messages instead of delivering them."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.published: list = []

    async def publish(self, message) -> None:
        self.published.append(message)

    async def start(self) -> None:
        pass

    async def join(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    def of_type(self, message_type) -> list:
        return [m for m in self.published if isinstance(m, message_type)]


@pytest.fixture
def helper_config(monkeypatch: pytest.MonkeyPatch) -> HelperConfig:
    monkeypatch.setenv("BUS_RETRY_DELAY_SECONDS", "0.01")
    monkeypatch.setenv("CHUNKING_MIN_CHUNK_CHARS", "10")
    monkeypatch.setenv("CHUNKING_MAX_CHUNK_CHARS", "200")
    return HelperConfig(logger=ColorLogger(logging.getLogger("tests")))


@pytest.fixture
def tracer(helper_config: HelperConfig) -> HelperTracer:
    return HelperTracer(helper_config, keep_history=100)


@pytest.fixture
def embed_client() -> FakeEmbedClient:
    return FakeEmbedClient()


@pytest.fixture
def rag_client() -> FakeRagClient:
    return FakeRagClient()


@pytest.fixture
def bus(helper_config: HelperConfig) -> RecordingBus:
    return RecordingBus(helper_config)


@pytest_asyncio.fixture
async def store(tmp_path: Path, helper_config: HelperConfig) -> DocumentStateStoreSqlite:
    """Create and initialize a document-state store with a temp DB."""
    state_store = DocumentStateStoreSqlite(helper_config=helper_config, db_path=tmp_path / "state.db")
    await state_store.initialize()
    return state_store


@pytest_asyncio.fixture
async def context_store(tmp_path: Path, helper_config: HelperConfig) -> ContextStoreSqlite:
    ctx_store = ContextStoreSqlite(helper_config=helper_config, db_path=tmp_path / "context.db")
    await ctx_store.initialize()
    return ctx_store


@pytest.fixture
def content_root(tmp_path: Path) -> Path:
    root = tmp_path / "content"
    root.mkdir()
    return root
