"""Semantic retrieval over the indexed rules and game transcripts.

Every hit is resolved against the relational stores before it is returned;
the vector payload alone is never trusted as the answer. Hits keep the order
of the index.
"""

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.SearchHit import SearchHit
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperTracer import HelperTracer
from shared.models.errors import EmbeddingDimensionError
from shared.models.search import (
    ConversationSearchResponse,
    ConversationSearchResultItem,
    RuleSearchResponse,
    RuleSearchResultItem,
)
from shared.stores.ContextStoreInterface import ContextStoreInterface
from shared.stores.DocumentStateStoreInterface import DocumentStateStoreInterface


class RetrievalService:
    """Handles semantic search queries: embed -> validate dimension -> search -> resolve."""

    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        embed_client: EmbedClientInterface,
        store: DocumentStateStoreInterface,
        context_store: ContextStoreInterface,
        tracer: HelperTracer,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client
        self._embed_client = embed_client
        self._store = store
        self._context_store = context_store
        self._tracer = tracer
        self.document_collection = helper_config.get_string_val("RAG_DOCUMENT_COLLECTION", default="document-embeddings")
        self.conversation_collection = helper_config.get_string_val("RAG_CONVERSATION_COLLECTION", default="conversation-embeddings")
        self.default_limit = int(helper_config.get_number_val("SEARCH_DEFAULT_LIMIT", default=5))

    ##########################################
    ################# RULES ##################
    ##########################################

    async def search_rules(self, query: str, ruleset_id: str | None = None, limit: int | None = None) -> RuleSearchResponse:
        """Search the document collection, optionally restricted to one ruleset.

        Args:
            query (str): Free text query.
            ruleset_id (str | None): Only return chunks of this ruleset.
            limit (int | None): Maximum number of hits, defaults to SEARCH_DEFAULT_LIMIT.

        Returns:
            RuleSearchResponse: Resolved hits in index order.

        Raises:
            ValueError: If the query is empty.
            EmbeddingDimensionError: If the query vector does not fit the collection.
        """
        limit = limit or self.default_limit
        self.logging.info("search_rules: query='%s', ruleset_id=%s, limit=%d", query, ruleset_id, limit)

        with self._tracer.start_activity("retrieval.search_rules", ruleset_id=ruleset_id, limit=limit) as activity:
            filters = {"rulesetId": ruleset_id} if ruleset_id else None
            hits = await self._search(self.document_collection, query, filters, limit)

            items: list[RuleSearchResultItem] = []
            for hit in hits:
                item = await self._resolve_rule_hit(hit, ruleset_id)
                if item is not None:
                    items.append(item)
            activity.set_tag("hits", len(hits))
            activity.set_tag("resolved", len(items))

        self.logging.info("search_rules: returning %d result(s).", len(items))
        return RuleSearchResponse(query=query, results=items, total=len(items))

    async def _resolve_rule_hit(self, hit: SearchHit, ruleset_id: str | None) -> RuleSearchResultItem | None:
        payload = hit.payload
        chunk_id = payload.get("chunkId")
        if ruleset_id and payload.get("rulesetId") != ruleset_id:
            self.logging.warning(
                "Dropping hit %s: ruleset '%s' does not match requested '%s'.",
                hit.point_id, payload.get("rulesetId"), ruleset_id,
            )
            return None
        if not chunk_id:
            self.logging.warning("Dropping hit %s: payload has no chunkId.", hit.point_id)
            return None

        chunk = await self._store.get_chunk(chunk_id)
        if chunk is None:
            self.logging.warning("Dropping hit %s: chunk %s not found.", hit.point_id, chunk_id)
            return None
        document = await self._store.get_document(chunk.document_id)
        if document is None:
            self.logging.warning("Dropping hit %s: document %s not found.", hit.point_id, chunk.document_id)
            return None

        return RuleSearchResultItem(
            chunk_id=chunk.chunk_id,
            document_id=document.document_id,
            document_name=document.file_name,
            ruleset_id=payload.get("rulesetId") or document.ruleset_id,
            chunk_text=chunk.text,
            page_number=chunk.page_number,
            score=hit.score,
        )

    ##########################################
    ############# CONVERSATIONS ##############
    ##########################################

    async def search_conversations(self, query: str, game_id: int, limit: int | None = None) -> ConversationSearchResponse:
        """Search the transcript messages of one game.

        Every hit is returned together with the message before and after it.

        Raises:
            ValueError: If the query is empty.
            EmbeddingDimensionError: If the query vector does not fit the collection.
        """
        limit = limit or self.default_limit
        self.logging.info("search_conversations: query='%s', game_id=%d, limit=%d", query, game_id, limit)

        with self._tracer.start_activity("retrieval.search_conversations", game_id=game_id, limit=limit) as activity:
            hits = await self._search(self.conversation_collection, query, {"gameId": str(game_id)}, limit)

            items: list[ConversationSearchResultItem] = []
            for hit in hits:
                item = await self._resolve_conversation_hit(hit, game_id)
                if item is not None:
                    items.append(item)
            activity.set_tag("hits", len(hits))
            activity.set_tag("resolved", len(items))

        self.logging.info("search_conversations: returning %d result(s).", len(items))
        return ConversationSearchResponse(query=query, game_id=game_id, results=items, total=len(items))

    async def _resolve_conversation_hit(self, hit: SearchHit, game_id: int) -> ConversationSearchResultItem | None:
        raw_id = hit.payload.get("messageId")
        try:
            message_id = int(raw_id)
        except (TypeError, ValueError):
            self.logging.warning("Dropping hit %s: invalid messageId '%s'.", hit.point_id, raw_id)
            return None

        message = await self._context_store.get_message(message_id)
        if message is None:
            self.logging.warning("Dropping hit %s: message %d not found.", hit.point_id, message_id)
            return None
        if message.game_id != game_id:
            self.logging.warning(
                "Dropping hit %s: message %d belongs to game %d, not %d.",
                hit.point_id, message_id, message.game_id, game_id,
            )
            return None

        previous_message, next_message = await self._context_store.get_message_neighbors(message)
        return ConversationSearchResultItem(
            message=message,
            previous_message=previous_message,
            next_message=next_message,
            score=hit.score,
        )

    ##########################################
    ################# SHARED #################
    ##########################################

    async def _search(self, collection: str, query: str, filters: dict[str, str] | None, limit: int) -> list[SearchHit]:
        if not query or not query.strip():
            raise ValueError("Query must not be empty.")

        query_vector = await self._embed_client.do_embed_one(query)

        collection_dimension = await self._rag_client.get_collection_dimension(collection)
        if collection_dimension is None:
            self.logging.warning("Collection '%s' does not exist yet, nothing to search.", collection)
            return []
        if collection_dimension != len(query_vector):
            raise EmbeddingDimensionError(collection=collection, expected=collection_dimension, actual=len(query_vector))

        return await self._rag_client.do_search(collection, query_vector, filters=filters, limit=limit)
