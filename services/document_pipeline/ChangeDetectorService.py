"""Change detection.

Scans the content directory, hashes every candidate file and compares the
hash with the last persisted one. New, changed and not yet extracted files
are handed to the document cracker; everything else is left alone.
"""

import asyncio
import os
from datetime import datetime, timezone

from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperIdentity import determine_document_kind, extract_ruleset_id, get_relative_directory
from shared.helper.HelperTracer import HelperTracer
from shared.messaging.MessageBusInterface import MessageBusInterface
from shared.models.document import FileChangeRecord, ScanSummary
from shared.models.messages import CrackDocumentMessage
from shared.stores.DocumentStateStoreInterface import DocumentStateStoreInterface
from services.document_pipeline.ChangeTracker import ChangeTracker
from services.document_pipeline.DirectoryScanner import DirectoryScanner

DEFAULT_SUPPORTED_EXTENSIONS = [".pdf", ".md", ".txt"]


class ChangeDetectorService:
    """Decides which source files need (re-)extraction."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store: DocumentStateStoreInterface,
        bus: MessageBusInterface,
        tracer: HelperTracer,
        scanner: DirectoryScanner | None = None,
        tracker: ChangeTracker | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self._store = store
        self._bus = bus
        self._tracer = tracer
        self._scanner = scanner or DirectoryScanner(helper_config)
        self._tracker = tracker or ChangeTracker(helper_config)
        self.supported_extensions = helper_config.get_list_val(
            "SCAN_SUPPORTED_EXTENSIONS", default=DEFAULT_SUPPORTED_EXTENSIONS
        )

    ##########################################
    ################ CORE SCAN ###############
    ##########################################

    async def scan_and_enqueue(
        self,
        content_directory: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ScanSummary:
        """Scan the content directory and enqueue extraction requests.

        A failure on one file is logged and counted, the scan goes on with the
        next file. Setting cancel_event stops the scan before the next file;
        requests already published stay published.

        Args:
            content_directory (str | None): Root to scan, defaults to SCAN_CONTENT_DIRECTORY.
            cancel_event (asyncio.Event | None): Cooperative stop signal.

        Returns:
            ScanSummary: Counters of the scan.

        Raises:
            ValueError: If no content directory is configured.
            FileNotFoundError: If the content directory does not exist.
        """
        root = content_directory if content_directory is not None else self._helper_config.get_path_val("SCAN_CONTENT_DIRECTORY")
        if not root or not root.strip():
            raise ValueError("Content directory must not be empty.")

        with self._tracer.start_activity("change_detector.scan", root=root) as activity:
            subdirectories = await asyncio.to_thread(self._scanner.get_subdirectories, root)
            directories = [root, *subdirectories]
            self.logging.info("Scanning %d director(ies) below %s ...", len(directories), root)

            summary = ScanSummary()
            for directory in directories:
                if summary.cancelled:
                    break
                files = await asyncio.to_thread(self._scanner.get_files, directory, self.supported_extensions)
                for file_path in files:
                    if cancel_event is not None and cancel_event.is_set():
                        summary.cancelled = True
                        break
                    summary.files_scanned += 1
                    try:
                        enqueued = await self._process_file(file_path, root)
                    except asyncio.CancelledError:
                        raise
                    except Exception as exc:
                        summary.errors += 1
                        self.logging.error("Error while checking file %s: %s", file_path, exc)
                        continue
                    if enqueued:
                        summary.files_enqueued += 1
                    else:
                        summary.files_unchanged += 1

            for key, value in summary.model_dump().items():
                activity.set_tag(key, value)

        if summary.cancelled:
            self.logging.warning("Scan of %s cancelled.", root)
        self.logging.info(
            "Scan complete: %d scanned, %d enqueued, %d unchanged, %d errors.",
            summary.files_scanned, summary.files_enqueued, summary.files_unchanged, summary.errors,
            color="green" if summary.errors == 0 else "yellow",
        )
        return summary

    ##########################################
    ############## SINGLE FILE ###############
    ##########################################

    async def _process_file(self, file_path: str, root: str) -> bool:
        """Check one file and publish an extraction request if needed.

        Returns:
            bool: True if a request was published, False if the file is unchanged and extracted.
        """
        file_hash = await self._tracker.compute_file_hash(file_path)
        record = await self._store.get_file_record(file_path)

        relative_directory = get_relative_directory(file_path, root)
        request = CrackDocumentMessage(
            file_path=file_path,
            relative_directory=relative_directory,
            ruleset_id=extract_ruleset_id(relative_directory),
            document_kind=determine_document_kind(relative_directory),
        )

        if record is None or record.file_hash != file_hash:
            self.logging.info("%s file detected: %s", "New" if record is None else "Changed", file_path)
            await self._store.upsert_file_record(
                FileChangeRecord(
                    file_path=file_path,
                    file_hash=file_hash,
                    last_modified=datetime.fromtimestamp(os.path.getmtime(file_path), tz=timezone.utc),
                    last_scanned_at=datetime.now(timezone.utc),
                )
            )
            await self._bus.publish(request)
            return True

        document = await self._store.get_document_by_path(file_path)
        if document is not None and document.content.strip():
            self.logging.debug("Unchanged file: %s", file_path)
            return False

        # hash known but extraction never completed: retry without touching the record
        self.logging.info("Unchanged file without extracted text, re-enqueueing: %s", file_path)
        await self._bus.publish(request)
        return True
