from services.document_pipeline.extractors.PdfTextExtractor import PdfTextExtractor
from services.document_pipeline.extractors.PlainTextExtractor import PlainTextExtractor
from services.document_pipeline.extractors.TextExtractorInterface import TextExtractorInterface


class ExtractorRegistry:
    """Picks the extractor for a file by its extension."""

    def __init__(self, extractors: list[TextExtractorInterface] | None = None):
        self._extractors = extractors if extractors is not None else [PdfTextExtractor(), PlainTextExtractor()]

    def for_path(self, file_path: str) -> TextExtractorInterface | None:
        for extractor in self._extractors:
            if extractor.supports(file_path):
                return extractor
        return None
