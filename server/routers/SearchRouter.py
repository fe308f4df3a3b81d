from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from shared.models.search import (
    ConversationSearchRequest,
    ConversationSearchResponse,
    RuleSearchRequest,
    RuleSearchResponse,
)

router = APIRouter(prefix="/search", tags=["search"])


@router.post("/rules")
async def search_rules(
    request: Request,
    body: RuleSearchRequest,
    _: None = Depends(verify_api_key),
) -> RuleSearchResponse:
    """Semantic search over the indexed sourcebooks.

    Args:
        request (Request): FastAPI request (provides app.state.retrieval_service).
        body (RuleSearchRequest): Query, optional ruleset filter and limit.

    Returns:
        RuleSearchResponse: Matching chunks with their document name.
    """
    retrieval_service = request.app.state.retrieval_service
    return await retrieval_service.search_rules(body.query, ruleset_id=body.ruleset_id, limit=body.limit)


@router.post("/conversations")
async def search_conversations(
    request: Request,
    body: ConversationSearchRequest,
    _: None = Depends(verify_api_key),
) -> ConversationSearchResponse:
    """Semantic search over the transcript of one game."""
    retrieval_service = request.app.state.retrieval_service
    return await retrieval_service.search_conversations(body.query, game_id=body.game_id, limit=body.limit)
