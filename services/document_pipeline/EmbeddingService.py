from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperTracer import HelperTracer
from shared.models.messages import ChunkReadyForEmbeddingMessage
from shared.stores.DocumentStateStoreInterface import DocumentStateStoreInterface
from services.document_pipeline.ChunkIndexer import ChunkIndexer


class EmbeddingService:
    """Embeds a single chunk and writes it to the document collection."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store: DocumentStateStoreInterface,
        embed_client: EmbedClientInterface,
        indexer: ChunkIndexer,
        tracer: HelperTracer,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store
        self._embed_client = embed_client
        self._indexer = indexer
        self._tracer = tracer

    async def process_chunk(self, message: ChunkReadyForEmbeddingMessage) -> bool:
        """Embed and index one chunk.

        A chunk or document that no longer exists (e.g. a redelivered message
        after re-chunking) is logged and skipped.

        Args:
            message (ChunkReadyForEmbeddingMessage): The embedding request.

        Returns:
            bool: True if the document's processed counter was advanced.

        Raises:
            ValueError: If the chunk text is empty.
            EmbeddingError: If the model fails or returns an empty vector.
            TransientInfraError: If the model or the index is unreachable.
        """
        with self._tracer.start_activity(
            "embedding.process_chunk",
            chunk_id=message.chunk_id,
            document_id=message.document_id,
        ) as activity:
            chunk = await self._store.get_chunk(message.chunk_id)
            if chunk is None:
                self.logging.warning("Chunk %s not found, skipping embedding.", message.chunk_id)
                return False
            document = await self._store.get_document(message.document_id)
            if document is None:
                self.logging.warning(
                    "Document %s of chunk %s not found, skipping embedding.", message.document_id, message.chunk_id
                )
                return False
            if not chunk.text or not chunk.text.strip():
                raise ValueError(f"Chunk {chunk.chunk_id} has no text to embed.")

            vector = await self._embed_client.do_embed_one(chunk.text)
            activity.set_tag("dimension", len(vector))

            counted = await self._indexer.index_chunk(document, chunk, vector)
            activity.set_tag("counted", counted)

        if counted:
            self.logging.debug("Embedded chunk %s of document %s.", chunk.chunk_id, document.document_id)
        else:
            self.logging.info("Chunk %s was already indexed, re-upserted without counting.", chunk.chunk_id)
        return counted
