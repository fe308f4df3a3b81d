from shared.models.document import ExtractedText
from shared.models.errors import ExtractionError
from services.document_pipeline.extractors.TextExtractorInterface import TextExtractorInterface


class PlainTextExtractor(TextExtractorInterface):
    """Markdown and text files are taken as they are, as a single page."""

    def get_supported_extensions(self) -> list[str]:
        return [".md", ".markdown", ".txt"]

    def extract(self, file_path: str) -> ExtractedText:
        try:
            with open(file_path, "r", encoding="utf-8", errors="replace") as f:
                content = f.read()
        except OSError as exc:
            raise ExtractionError(f"Cannot read text file '{file_path}': {exc}") from exc
        return ExtractedText(content=content, page_count=1)
