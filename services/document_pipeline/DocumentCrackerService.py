import asyncio
import os
from datetime import datetime, timezone

from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperIdentity import make_document_id
from shared.helper.HelperTracer import HelperTracer
from shared.messaging.MessageBusInterface import MessageBusInterface
from shared.models.document import ExtractedDocument
from shared.models.messages import CrackDocumentMessage, DocumentReadyForChunkingMessage
from shared.stores.DocumentStateStoreInterface import DocumentStateStoreInterface
from services.document_pipeline.extractors.ExtractorRegistry import ExtractorRegistry


class DocumentCrackerService:
    """Extracts the text of a source file and hands the document to chunking."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store: DocumentStateStoreInterface,
        bus: MessageBusInterface,
        tracer: HelperTracer,
        extractors: ExtractorRegistry | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store
        self._bus = bus
        self._tracer = tracer
        self._extractors = extractors or ExtractorRegistry()

    async def process_document(self, message: CrackDocumentMessage) -> DocumentReadyForChunkingMessage | None:
        """Extract, store and forward one document.

        Args:
            message (CrackDocumentMessage): The extraction request.

        Returns:
            DocumentReadyForChunkingMessage | None: The published chunking request,
                None if the file type is not supported.

        Raises:
            ExtractionError: If extraction of a supported file fails.
        """
        extractor = self._extractors.for_path(message.file_path)
        if extractor is None:
            self.logging.debug("Unsupported file type, skipping: %s", message.file_path)
            return None

        with self._tracer.start_activity(
            "document_cracker.process_document",
            file_path=message.file_path,
            ruleset_id=message.ruleset_id,
        ) as activity:
            extracted = await asyncio.to_thread(extractor.extract, message.file_path)
            file_name = os.path.basename(message.file_path)
            file_size = os.path.getsize(message.file_path)
            document_id = make_document_id(message.ruleset_id, file_name)
            cracked_at = datetime.now(timezone.utc)

            await self._store.upsert_document(
                ExtractedDocument(
                    document_id=document_id,
                    file_path=message.file_path,
                    file_name=file_name,
                    relative_directory=message.relative_directory,
                    ruleset_id=message.ruleset_id,
                    document_kind=message.document_kind,
                    content=extracted.content,
                    page_count=extracted.page_count,
                    file_size=file_size,
                    cracked_at=cracked_at,
                )
            )
            activity.set_tag("document_id", document_id)
            activity.set_tag("page_count", extracted.page_count)

            ready = DocumentReadyForChunkingMessage(
                document_id=document_id,
                file_path=message.file_path,
                file_name=file_name,
                relative_directory=message.relative_directory,
                ruleset_id=message.ruleset_id,
                file_size=file_size,
                page_count=extracted.page_count,
                cracked_at=cracked_at,
                document_kind=message.document_kind,
            )
            await self._bus.publish(ready)

        self.logging.info(
            "Extracted %s (%d page(s), %d chars) as document %s",
            file_name, extracted.page_count, len(extracted.content), document_id,
        )
        return ready
