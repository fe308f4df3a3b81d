"""Recursive separator slicing.

The text is cut at the coarsest separator that yields pieces below the size
limit (paragraphs, then lines, then sentences, then words); neighbouring
pieces are merged back together as long as they fit. Pieces that are still
too long after the last separator are hard-cut.
"""

from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperIdentity import extract_page_number, make_chunk_id
from shared.models.document import TextChunk

SEPARATOR_PRESETS: dict[str, list[str]] = {
    "text": ["\n\n", "\n", ". ", "? ", "! ", "; ", " "],
    "markdown": ["\n# ", "\n## ", "\n### ", "\n#### ", "\n\n", "\n", ". ", "? ", "! ", " "],
}


class SeparatorSlicerStrategy:
    """Separator-based slicing with a minimum chunk length filter."""

    name = "slicer"

    def __init__(
        self,
        helper_config: HelperConfig,
        max_chunk_chars: int | None = None,
        min_chunk_chars: int | None = None,
        separators: list[str] | None = None,
    ):
        self.logging = helper_config.get_logger()
        self.max_chunk_chars = int(max_chunk_chars or helper_config.get_number_val("CHUNKING_MAX_CHUNK_CHARS", default=4000))
        self.min_chunk_chars = int(
            min_chunk_chars if min_chunk_chars is not None
            else helper_config.get_number_val("CHUNKING_MIN_CHUNK_CHARS", default=100)
        )
        if separators is None:
            preset = helper_config.get_string_val("CHUNKING_SEPARATORS", default="text").lower()
            if preset not in SEPARATOR_PRESETS:
                raise ValueError(
                    f"Unknown separator preset '{preset}'. Supported: {sorted(SEPARATOR_PRESETS)}"
                )
            separators = SEPARATOR_PRESETS[preset]
        self.separators = separators

    ##########################################
    ################ SLICING #################
    ##########################################

    def slice(self, text: str) -> list[str]:
        """Slice a text into pieces no longer than max_chunk_chars."""
        return [piece.strip() for piece in self._split(text, self.separators) if piece.strip()]

    def _split(self, text: str, separators: list[str]) -> list[str]:
        if len(text) <= self.max_chunk_chars:
            return [text]
        if not separators:
            return [text[i:i + self.max_chunk_chars] for i in range(0, len(text), self.max_chunk_chars)]

        separator, finer = separators[0], separators[1:]
        parts = text.split(separator)
        if len(parts) == 1:
            return self._split(text, finer)
        # line breaks and headings open the next piece, punctuation closes the previous one
        if separator.startswith("\n"):
            pieces = [parts[0]] + [separator + part for part in parts[1:]]
        else:
            pieces = [part + separator for part in parts[:-1]] + [parts[-1]]

        slices: list[str] = []
        current = ""
        for piece in pieces:
            if len(piece) > self.max_chunk_chars:
                if current:
                    slices.append(current)
                    current = ""
                slices.extend(self._split(piece, finer))
            elif len(current) + len(piece) <= self.max_chunk_chars:
                current += piece
            else:
                slices.append(current)
                current = piece
        if current:
            slices.append(current)
        return slices

    async def chunk_text(self, text: str, document_id: str) -> list[TextChunk]:
        if not text or not text.strip():
            return []

        chunks: list[TextChunk] = []
        filtered = 0
        for piece in self.slice(text):
            if len(piece) < self.min_chunk_chars:
                filtered += 1
                continue
            index = len(chunks)
            chunks.append(
                TextChunk(
                    chunk_id=make_chunk_id(document_id, index),
                    document_id=document_id,
                    chunk_index=index,
                    text=piece,
                    page_number=extract_page_number(piece),
                )
            )

        if filtered:
            self.logging.info(
                "Filtered out %d chunk(s) shorter than %d characters for document %s",
                filtered, self.min_chunk_chars, document_id,
            )
        return chunks
