"""Records kept in the document-state store and results of pipeline stages."""

from datetime import datetime

from pydantic import BaseModel, Field


class FileChangeRecord(BaseModel):
    """Last known content hash of a source file.

    Attributes:
        file_path:        Absolute path of the source file (unique key).
        file_hash:        Base64 SHA-256 of the file content.
        last_modified:    Filesystem modification time seen at the last scan.
        last_scanned_at:  When the hash was last written.
    """

    file_path: str
    file_hash: str
    last_modified: datetime | None = None
    last_scanned_at: datetime | None = None


class ExtractedText(BaseModel):
    """Output of a text extractor before it is stored."""

    content: str
    page_count: int = 0


class ExtractedDocument(BaseModel):
    """Text extracted from one source file plus its processing progress.

    Attributes:
        document_id:           Deterministic id derived from (ruleset_id, file_name).
        file_path:             Absolute path of the source file (unique).
        file_name:             Display name used in retrieval results.
        relative_directory:    Directory relative to the scan root, None for root files.
        ruleset_id:            Scope key (first path segment or "default").
        document_kind:         "Sourcebook" or "Transcript".
        content:               Full extracted text, including page markers.
        page_count:            Number of pages reported by the extractor.
        file_size:             Size of the source file in bytes.
        cracked_at:            When the text was last extracted.
        total_chunk_count:     Set by the chunking stage before any chunk is processed.
        processed_chunk_count: Advanced by exactly one per chunk that reached the index.
        is_fully_processed:    True only once processed == total and both are nonzero.
    """

    document_id: str
    file_path: str
    file_name: str
    relative_directory: str | None = None
    ruleset_id: str
    document_kind: str
    content: str
    page_count: int = 0
    file_size: int = 0
    cracked_at: datetime | None = None
    total_chunk_count: int = 0
    processed_chunk_count: int = 0
    is_fully_processed: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TextChunk(BaseModel):
    """One ordered chunk of a document.

    ``vector`` is only set when a chunking strategy already produced the
    embedding; it is never persisted. ``vector_point_id`` is back-filled once
    the chunk has been written to the vector index.
    """

    chunk_id: str
    document_id: str
    chunk_index: int
    text: str
    page_number: int | None = None
    vector: list[float] | None = Field(default=None, exclude=True)
    vector_point_id: int | None = None
    created_at: datetime | None = None


class ScanSummary(BaseModel):
    files_scanned: int = 0
    files_enqueued: int = 0
    files_unchanged: int = 0
    errors: int = 0
    cancelled: bool = False


class ChunkingSummary(BaseModel):
    document_id: str
    total: int = 0
    stored: int = 0
    queued: int = 0
    indexed: int = 0
