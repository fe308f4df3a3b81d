"""Chunking stage.

Chunks and the document's chunk total are saved in one transaction before any
chunk is forwarded, so the embedding stage always finds both.
"""

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperTracer import HelperTracer
from shared.messaging.MessageBusInterface import MessageBusInterface
from shared.models.document import ChunkingSummary
from shared.models.messages import ChunkReadyForEmbeddingMessage, DocumentReadyForChunkingMessage
from shared.stores.DocumentStateStoreInterface import DocumentStateStoreInterface
from services.document_pipeline.ChunkIndexer import ChunkIndexer
from services.document_pipeline.chunking.ChunkingStrategy import ChunkingStrategy


class ChunkingService:
    def __init__(
        self,
        helper_config: HelperConfig,
        store: DocumentStateStoreInterface,
        bus: MessageBusInterface,
        rag_client: RAGClientInterface,
        strategy: ChunkingStrategy,
        indexer: ChunkIndexer,
        tracer: HelperTracer,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store
        self._bus = bus
        self._rag_client = rag_client
        self._strategy = strategy
        self._indexer = indexer
        self._tracer = tracer

    async def process_document(self, message: DocumentReadyForChunkingMessage) -> ChunkingSummary | None:
        """Split a document into chunks and forward them.

        Chunks that already carry a vector are written to the index directly;
        the others are published as embedding requests.

        Args:
            message (DocumentReadyForChunkingMessage): The chunking request.

        Returns:
            ChunkingSummary | None: Counters, None if the document is missing or empty.

        Raises:
            ValueError: If the strategy produced no chunks for a non-empty document.
        """
        with self._tracer.start_activity(
            "chunking.process_document",
            document_id=message.document_id,
            strategy=self._strategy.name,
        ) as activity:
            document = await self._store.get_document(message.document_id)
            if document is None:
                self.logging.warning("Document %s not found, skipping chunking.", message.document_id)
                return None
            if not document.content or not document.content.strip():
                self.logging.warning("Document %s (%s) has no text, skipping chunking.", document.document_id, document.file_name)
                return None

            chunks = await self._strategy.chunk_text(document.content, document.document_id)
            if not chunks:
                raise ValueError(
                    f"Chunking strategy '{self._strategy.name}' produced no chunks for document "
                    f"{document.document_id} ({document.file_name})."
                )

            stale = await self._store.save_chunks(document.document_id, chunks)
            stale_point_ids = [c.vector_point_id for c in stale if c.vector_point_id is not None]
            if stale_point_ids:
                self.logging.info(
                    "Removing %d stale point(s) of document %s from the index.",
                    len(stale_point_ids), document.document_id,
                )
                await self._rag_client.do_delete_points(self._indexer.collection, stale_point_ids)

            summary = ChunkingSummary(document_id=document.document_id, total=len(chunks), stored=len(chunks))
            for chunk in chunks:
                if chunk.vector:
                    await self._indexer.index_chunk(document, chunk, chunk.vector)
                    summary.indexed += 1
                    continue
                await self._bus.publish(
                    ChunkReadyForEmbeddingMessage(
                        chunk_id=chunk.chunk_id,
                        chunk_text=chunk.text,
                        chunk_index=chunk.chunk_index,
                        document_id=document.document_id,
                        file_name=document.file_name,
                        file_path=document.file_path,
                        relative_directory=document.relative_directory,
                        ruleset_id=message.ruleset_id,
                        file_size=document.file_size,
                        page_count=document.page_count,
                        page_number=chunk.page_number,
                        cracked_at=document.cracked_at or message.cracked_at,
                        total_chunks=len(chunks),
                        document_kind=document.document_kind,
                    )
                )
                summary.queued += 1

            activity.set_tag("total", summary.total)
            activity.set_tag("queued", summary.queued)
            activity.set_tag("indexed", summary.indexed)

        self.logging.info(
            "Chunked document %s (%s): %d chunk(s), %d queued for embedding, %d indexed directly.",
            document.document_id, document.file_name, summary.total, summary.queued, summary.indexed,
        )
        return summary
