from abc import ABC, abstractmethod

from shared.models.document import ExtractedDocument, FileChangeRecord, TextChunk


class DocumentStateStoreInterface(ABC):
    """Persistent state of the ingestion pipeline: file hashes, extracted documents and chunks."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create the schema if it does not exist yet."""
        pass

    ################ FILE CHANGE RECORDS ##################
    @abstractmethod
    async def get_file_record(self, file_path: str) -> FileChangeRecord | None:
        pass

    @abstractmethod
    async def upsert_file_record(self, record: FileChangeRecord) -> None:
        pass

    ################ DOCUMENTS ##################
    @abstractmethod
    async def get_document(self, document_id: str) -> ExtractedDocument | None:
        pass

    @abstractmethod
    async def get_document_by_path(self, file_path: str) -> ExtractedDocument | None:
        pass

    @abstractmethod
    async def upsert_document(self, document: ExtractedDocument) -> None:
        """Insert or replace a document, resetting its processing progress."""
        pass

    @abstractmethod
    async def set_total_chunk_count(self, document_id: str, total: int) -> None:
        """Set the chunk total and recount processed chunks from their stored point ids."""
        pass

    ################ CHUNKS ##################
    @abstractmethod
    async def save_chunks(self, document_id: str, chunks: list[TextChunk]) -> list[TextChunk]:
        """Persist the chunks of a document, replacing earlier ones with the same id.

        Saved chunks lose their vector_point_id, since their text may have changed.
        Chunks of the document beyond the new chunk count are removed, and the
        document total is set to len(chunks) in the same transaction.

        Returns:
            list[TextChunk]: The removed stale chunks.
        """
        pass

    @abstractmethod
    async def get_chunk(self, chunk_id: str) -> TextChunk | None:
        pass

    @abstractmethod
    async def get_chunks(self, document_id: str) -> list[TextChunk]:
        pass

    @abstractmethod
    async def mark_chunk_indexed(self, chunk_id: str, document_id: str, point_id: int) -> bool:
        """Record the vector point of a chunk and count it as processed.

        Both happen in one transaction and only if the chunk had no point id
        yet, so a redelivered message never advances the counter twice.

        Returns:
            bool: True if the counter was advanced, False if the chunk was already indexed.
        """
        pass
