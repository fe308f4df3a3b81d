from datetime import datetime, timezone

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import VectorPoint, build_rule_chunk_payload
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperIdentity import extract_ruleset_id, make_point_id
from shared.models.document import ExtractedDocument, TextChunk
from shared.stores.DocumentStateStoreInterface import DocumentStateStoreInterface


class ChunkIndexer:
    """Writes one embedded chunk to the document collection and records its progress."""

    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        store: DocumentStateStoreInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client
        self._store = store
        self.collection = helper_config.get_string_val("RAG_DOCUMENT_COLLECTION", default="document-embeddings")
        self.distance = helper_config.get_string_val("EMBED_DISTANCE", default="Cosine")

    @staticmethod
    def get_scope(document: ExtractedDocument) -> str:
        """Scope key of a document: first segment of its relative directory."""
        if document.relative_directory:
            return extract_ruleset_id(document.relative_directory)
        return document.ruleset_id or extract_ruleset_id(None)

    async def index_chunk(self, document: ExtractedDocument, chunk: TextChunk, vector: list[float]) -> bool:
        """Upsert the chunk's point and count it as processed.

        The upsert is idempotent. The counter only moves if the chunk had no
        vector point yet.

        Returns:
            bool: True if the processed counter was advanced.

        Raises:
            PayloadValidationError: If the payload cannot be built.
            EmbeddingDimensionError: If the collection was created with another dimension.
            TransientInfraError: If the vector index is unavailable.
        """
        point_id = make_point_id(chunk.chunk_id)
        payload = build_rule_chunk_payload(
            chunk_id=chunk.chunk_id,
            chunk_index=chunk.chunk_index,
            chunk_text=chunk.text,
            document_id=document.document_id,
            file_name=document.file_name,
            ruleset_id=self.get_scope(document),
            file_size=document.file_size,
            document_kind=document.document_kind,
            embedded_at=datetime.now(timezone.utc).isoformat(),
            page_number=chunk.page_number,
        )
        point = VectorPoint.create(point_id=point_id, vector=vector, payload=payload)

        await self._rag_client.do_ensure_collection(self.collection, dimension=len(vector), distance=self.distance)
        await self._rag_client.do_upsert_points(self.collection, [point])

        if chunk.vector_point_id is not None:
            self.logging.debug("Chunk %s was already indexed, counter left unchanged.", chunk.chunk_id)
            return False
        return await self._store.mark_chunk_indexed(chunk.chunk_id, document.document_id, point_id)
