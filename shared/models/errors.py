"""Exception types raised by the ingestion and retrieval pipeline.

Not-found conditions (missing collection, vanished chunk on redelivery,
unresolvable search hit) are not modelled here: they are logged and skipped
by the caller.
"""


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class TransientInfraError(PipelineError):
    """The vector index or the embedding model is unreachable or not ready.

    Always propagated so the message delivery layer can retry.
    """


class EmbeddingError(PipelineError):
    """The embedding model returned a non-success response or an empty vector."""


class ExtractionError(PipelineError):
    """Text extraction of a supported source file failed."""


class DataIntegrityError(PipelineError):
    """Stored or exchanged data violates an invariant of the pipeline."""


class EmbeddingDimensionError(DataIntegrityError):
    """Query vector and collection were built with different dimensionality."""

    def __init__(self, collection: str, expected: int, actual: int):
        self.collection = collection
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Embedding dimension mismatch for collection '{collection}': "
            f"collection expects {expected}, query vector has {actual}. "
            "The query must be embedded with the same model that built the index."
        )


class PayloadValidationError(DataIntegrityError):
    """A vector payload is missing required keys or carries non-string values."""
