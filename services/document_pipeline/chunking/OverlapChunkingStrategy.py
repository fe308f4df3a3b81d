from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperIdentity import extract_page_number, make_chunk_id
from shared.models.document import TextChunk


class OverlapChunkingStrategy:
    """Fixed-size character windows with a constant overlap between neighbours."""

    name = "overlap"

    def __init__(self, helper_config: HelperConfig, chunk_size: int | None = None, overlap: int | None = None):
        self.logging = helper_config.get_logger()
        self.chunk_size = int(chunk_size or helper_config.get_number_val("CHUNKING_MAX_CHUNK_CHARS", default=4000))
        self.overlap = int(overlap if overlap is not None else helper_config.get_number_val("CHUNKING_OVERLAP_CHARS", default=100))
        if self.overlap >= self.chunk_size:
            raise ValueError(
                f"Chunk overlap ({self.overlap}) must be smaller than the chunk size ({self.chunk_size})."
            )

    def split_text(self, text: str) -> list[str]:
        """Split a text into overlapping windows.

        Args:
            text (str): The full document text.

        Returns:
            list[str]: Ordered list of windows.
        """
        if not text:
            return []
        windows: list[str] = []
        start = 0
        while start < len(text):
            end = min(start + self.chunk_size, len(text))
            windows.append(text[start:end])
            if end >= len(text):
                break
            start = end - self.overlap
        return windows

    async def chunk_text(self, text: str, document_id: str) -> list[TextChunk]:
        windows = [w for w in self.split_text(text) if w.strip()]
        return [
            TextChunk(
                chunk_id=make_chunk_id(document_id, index),
                document_id=document_id,
                chunk_index=index,
                text=window,
                page_number=extract_page_number(window),
            )
            for index, window in enumerate(windows)
        ]
