from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import ConversationMessageRequest, ScanRequest
from server.models.responses import DocumentStatusResponse, ScanResponse
from shared.models.messages import ConversationMessageReadyForEmbeddingMessage

router = APIRouter(prefix="/index", tags=["index"])


@router.post("/scan", status_code=202)
async def trigger_scan(
    request: Request,
    body: ScanRequest,
    background_tasks: BackgroundTasks,
    _: None = Depends(verify_api_key),
) -> ScanResponse:
    """Scan the content directory for new or changed files.

    With ``wait`` the scan runs inside the request and its summary is
    returned; otherwise it runs as a background task.
    """
    change_detector = request.app.state.pipeline.change_detector
    if body.wait:
        summary = await change_detector.scan_and_enqueue(content_directory=body.content_directory)
        return ScanResponse(status="completed", summary=summary)
    background_tasks.add_task(change_detector.scan_and_enqueue, body.content_directory)
    return ScanResponse(status="accepted")


@router.post("/conversation-message", status_code=202)
async def enqueue_conversation_message(
    request: Request,
    body: ConversationMessageRequest,
    _: None = Depends(verify_api_key),
) -> dict:
    """Queue a transcript message for embedding."""
    await request.app.state.bus.publish(ConversationMessageReadyForEmbeddingMessage(**body.model_dump()))
    return {"status": "accepted", "message_id": body.message_id}


@router.get("/documents/{document_id}")
async def get_document_status(
    request: Request,
    document_id: str,
    _: None = Depends(verify_api_key),
) -> DocumentStatusResponse:
    """Processing progress of a single document."""
    document = await request.app.state.store.get_document(document_id)
    if document is None:
        raise HTTPException(status_code=404, detail=f"Document '{document_id}' not found.")
    return DocumentStatusResponse(**document.model_dump(include=set(DocumentStatusResponse.model_fields)))
