from datetime import datetime

from pydantic import BaseModel

from shared.models.document import ScanSummary


class ScanResponse(BaseModel):
    status: str
    summary: ScanSummary | None = None


class DocumentStatusResponse(BaseModel):
    document_id: str
    file_name: str
    ruleset_id: str
    document_kind: str
    page_count: int
    cracked_at: datetime | None = None
    total_chunk_count: int
    processed_chunk_count: int
    is_fully_processed: bool
