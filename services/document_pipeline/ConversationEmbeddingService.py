from datetime import datetime, timezone

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import VectorPoint, build_conversation_payload
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperIdentity import make_point_id
from shared.helper.HelperTracer import HelperTracer
from shared.models.messages import ConversationMessageReadyForEmbeddingMessage


class ConversationEmbeddingService:
    """Embeds game transcript messages into the conversation collection, scoped by game."""

    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        embed_client: EmbedClientInterface,
        tracer: HelperTracer,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client
        self._embed_client = embed_client
        self._tracer = tracer
        self.collection = helper_config.get_string_val("RAG_CONVERSATION_COLLECTION", default="conversation-embeddings")
        self.distance = helper_config.get_string_val("EMBED_DISTANCE", default="Cosine")

    async def process_message(self, message: ConversationMessageReadyForEmbeddingMessage) -> int:
        """Embed one message and upsert it.

        Returns:
            int: The point id of the message.

        Raises:
            ValueError: If the message text is empty.
            EmbeddingError: If the model fails or returns an empty vector.
        """
        if not message.text or not message.text.strip():
            raise ValueError(f"Message {message.message_id} has no text to embed.")

        with self._tracer.start_activity(
            "conversation_embedding.process_message",
            message_id=message.message_id,
            game_id=message.game_id,
        ):
            vector = await self._embed_client.do_embed_one(message.text)
            payload = build_conversation_payload(
                message_id=message.message_id,
                game_id=message.game_id,
                text=message.text,
                role=message.role,
                created_at=message.created_at.isoformat(),
                embedded_at=datetime.now(timezone.utc).isoformat(),
            )
            point_id = make_point_id(str(message.message_id))
            point = VectorPoint.create(point_id=point_id, vector=vector, payload=payload)

            await self._rag_client.do_ensure_collection(self.collection, dimension=len(vector), distance=self.distance)
            await self._rag_client.do_upsert_points(self.collection, [point])

        self.logging.debug("Embedded message %d of game %d.", message.message_id, message.game_id)
        return point_id
