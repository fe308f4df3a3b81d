from abc import ABC, abstractmethod
import os

from shared.models.document import ExtractedText


class TextExtractorInterface(ABC):
    """Extracts plain text from one kind of source file. Blocking; run in a thread."""

    @abstractmethod
    def get_supported_extensions(self) -> list[str]:
        """Returns the lowercase extensions handled by the extractor, e.g. [".pdf"]."""
        pass

    def supports(self, file_path: str) -> bool:
        return os.path.splitext(file_path)[1].lower() in self.get_supported_extensions()

    @abstractmethod
    def extract(self, file_path: str) -> ExtractedText:
        """
        Raises:
            ExtractionError: If the file cannot be read or parsed.
        """
        pass
