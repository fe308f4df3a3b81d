from typing import Protocol, runtime_checkable

from shared.models.document import TextChunk


@runtime_checkable
class ChunkingStrategy(Protocol):
    """Anything that can split a document text into ordered chunks.

    Implementations must return chunks with contiguous indexes starting at 0
    and chunk ids built with make_chunk_id(). A chunk may carry a precomputed
    ``vector``; the chunking service then writes it to the index directly.
    """

    name: str

    async def chunk_text(self, text: str, document_id: str) -> list[TextChunk]:
        ...
