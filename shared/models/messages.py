"""Messages exchanged between pipeline stages over the message bus.

Each message carries enough identifiers for the consumer to be idempotent.
"""

from datetime import datetime

from pydantic import BaseModel


class CrackDocumentMessage(BaseModel):
    """Change detector → document cracker."""

    file_path: str
    relative_directory: str | None = None
    ruleset_id: str
    document_kind: str


class DocumentReadyForChunkingMessage(BaseModel):
    """Document cracker → chunking service."""

    document_id: str
    file_path: str
    file_name: str
    relative_directory: str | None = None
    ruleset_id: str
    file_size: int = 0
    page_count: int = 0
    cracked_at: datetime
    document_kind: str


class ChunkReadyForEmbeddingMessage(BaseModel):
    """Chunking service → embedding service.

    ``chunk_text`` is the chunk text at publish time. The embedding stage
    embeds the stored chunk, which may be newer after a re-chunk.
    """

    chunk_id: str
    chunk_text: str
    chunk_index: int
    document_id: str
    file_name: str
    file_path: str
    relative_directory: str | None = None
    ruleset_id: str
    file_size: int = 0
    page_count: int = 0
    page_number: int | None = None
    cracked_at: datetime | None = None
    total_chunks: int
    document_kind: str


class ConversationMessageReadyForEmbeddingMessage(BaseModel):
    """Chat layer → conversation embedding service."""

    message_id: int
    game_id: int
    text: str
    role: str = "user"
    created_at: datetime
