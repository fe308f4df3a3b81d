"""PDF text extraction with PyMuPDF.

Each page's text is preceded by a "--- Page N ---" marker so chunks can be
traced back to the page they came from.
"""

import fitz  # PyMuPDF

from shared.models.document import ExtractedText
from shared.models.errors import ExtractionError
from services.document_pipeline.extractors.TextExtractorInterface import TextExtractorInterface


def page_marker(page_number: int) -> str:
    return f"--- Page {page_number} ---"


class PdfTextExtractor(TextExtractorInterface):
    def get_supported_extensions(self) -> list[str]:
        return [".pdf"]

    def extract(self, file_path: str) -> ExtractedText:
        try:
            doc = fitz.open(file_path)
        except (RuntimeError, OSError, ValueError) as exc:
            raise ExtractionError(f"Cannot open PDF '{file_path}': {exc}") from exc

        try:
            if len(doc) == 0:
                raise ExtractionError(f"PDF '{file_path}' has no pages.")
            parts: list[str] = []
            for page_index in range(len(doc)):
                text = doc[page_index].get_text("text").strip()
                parts.append(f"{page_marker(page_index + 1)}\n{text}" if text else page_marker(page_index + 1))
            page_count = len(doc)
        finally:
            doc.close()

        return ExtractedText(content="\n\n".join(parts), page_count=page_count)
