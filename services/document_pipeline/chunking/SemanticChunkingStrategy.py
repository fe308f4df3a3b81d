"""Embedding-driven chunking.

Sentences are embedded and a new chunk starts wherever the cosine distance
between two consecutive sentences is above the configured percentile of all
distances in the document. Each resulting chunk is embedded once more and
carries that vector, so it skips the embedding stage.
"""

import math

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperIdentity import extract_page_number, make_chunk_id
from shared.models.document import TextChunk
from services.document_pipeline.chunking.SeparatorSlicerStrategy import SeparatorSlicerStrategy

EMBED_BATCH_SIZE = 64


def _cosine_distance(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 1.0
    return 1.0 - dot / norm


def _percentile(values: list[float], percentile: float) -> float:
    ordered = sorted(values)
    if not ordered:
        return 0.0
    rank = (len(ordered) - 1) * percentile / 100
    low = math.floor(rank)
    high = math.ceil(rank)
    return ordered[low] + (ordered[high] - ordered[low]) * (rank - low)


class SemanticChunkingStrategy:
    """Groups sentences by semantic similarity and attaches chunk embeddings."""

    name = "semantic"

    def __init__(
        self,
        helper_config: HelperConfig,
        embed_client: EmbedClientInterface,
        breakpoint_percentile: float | None = None,
    ):
        self.logging = helper_config.get_logger()
        self._embed_client = embed_client
        self.breakpoint_percentile = float(
            breakpoint_percentile if breakpoint_percentile is not None
            else helper_config.get_number_val("CHUNKING_BREAKPOINT_PERCENTILE", default=95)
        )
        self.max_chunk_chars = int(helper_config.get_number_val("CHUNKING_MAX_CHUNK_CHARS", default=4000))
        self.min_chunk_chars = int(helper_config.get_number_val("CHUNKING_MIN_CHUNK_CHARS", default=100))
        # sentences are the smallest unit that gets embedded
        self._sentence_slicer = SeparatorSlicerStrategy(
            helper_config=helper_config,
            max_chunk_chars=max(self.min_chunk_chars, 300),
            min_chunk_chars=0,
            separators=["\n\n", "\n", ". ", "? ", "! ", " "],
        )

    async def _embed_all(self, texts: list[str]) -> list[list[float]]:
        vectors: list[list[float]] = []
        for start in range(0, len(texts), EMBED_BATCH_SIZE):
            vectors.extend(await self._embed_client.do_embed(texts[start:start + EMBED_BATCH_SIZE]))
        return vectors

    def _group(self, sentences: list[str], vectors: list[list[float]]) -> list[str]:
        if len(sentences) < 2:
            return [" ".join(sentences)] if sentences else []
        distances = [_cosine_distance(vectors[i], vectors[i + 1]) for i in range(len(sentences) - 1)]
        threshold = _percentile(distances, self.breakpoint_percentile)

        groups: list[str] = []
        current = sentences[0]
        for sentence, distance in zip(sentences[1:], distances):
            if distance > threshold or len(current) + len(sentence) + 1 > self.max_chunk_chars:
                groups.append(current)
                current = sentence
            else:
                current = f"{current} {sentence}"
        groups.append(current)
        return groups

    async def chunk_text(self, text: str, document_id: str) -> list[TextChunk]:
        if not text or not text.strip():
            return []

        sentences = self._sentence_slicer.slice(text)
        sentence_vectors = await self._embed_all(sentences)
        groups = [g for g in self._group(sentences, sentence_vectors) if len(g) >= self.min_chunk_chars]
        if not groups:
            return []
        chunk_vectors = await self._embed_all(groups)

        self.logging.debug("Semantic chunking produced %d chunk(s) for document %s", len(groups), document_id)
        return [
            TextChunk(
                chunk_id=make_chunk_id(document_id, index),
                document_id=document_id,
                chunk_index=index,
                text=group,
                page_number=extract_page_number(group),
                vector=vector,
            )
            for index, (group, vector) in enumerate(zip(groups, chunk_vectors))
        ]
