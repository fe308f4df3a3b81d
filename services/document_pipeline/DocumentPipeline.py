from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperTracer import HelperTracer
from shared.messaging.MessageBusInterface import MessageBusInterface
from shared.models.messages import (
    ChunkReadyForEmbeddingMessage,
    ConversationMessageReadyForEmbeddingMessage,
    CrackDocumentMessage,
    DocumentReadyForChunkingMessage,
)
from shared.stores.DocumentStateStoreInterface import DocumentStateStoreInterface
from services.document_pipeline.ChangeDetectorService import ChangeDetectorService
from services.document_pipeline.ChunkIndexer import ChunkIndexer
from services.document_pipeline.ChunkingService import ChunkingService
from services.document_pipeline.ConversationEmbeddingService import ConversationEmbeddingService
from services.document_pipeline.DocumentCrackerService import DocumentCrackerService
from services.document_pipeline.EmbeddingService import EmbeddingService
from services.document_pipeline.chunking.ChunkingStrategy import ChunkingStrategy
from services.document_pipeline.chunking.ChunkingStrategyManager import ChunkingStrategyManager


class DocumentPipeline:
    """Builds the ingestion stages from shared collaborators and connects them to the bus."""

    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        embed_client: EmbedClientInterface,
        store: DocumentStateStoreInterface,
        bus: MessageBusInterface,
        tracer: HelperTracer,
        chunking_strategy: ChunkingStrategy | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self.bus = bus
        if chunking_strategy is None:
            chunking_strategy = ChunkingStrategyManager(helper_config, embed_client=embed_client).get_strategy()

        indexer = ChunkIndexer(helper_config=helper_config, rag_client=rag_client, store=store)
        self.change_detector = ChangeDetectorService(
            helper_config=helper_config, store=store, bus=bus, tracer=tracer,
        )
        self.cracker = DocumentCrackerService(
            helper_config=helper_config, store=store, bus=bus, tracer=tracer,
        )
        self.chunking = ChunkingService(
            helper_config=helper_config,
            store=store,
            bus=bus,
            rag_client=rag_client,
            strategy=chunking_strategy,
            indexer=indexer,
            tracer=tracer,
        )
        self.embedding = EmbeddingService(
            helper_config=helper_config,
            store=store,
            embed_client=embed_client,
            indexer=indexer,
            tracer=tracer,
        )
        self.conversation_embedding = ConversationEmbeddingService(
            helper_config=helper_config,
            rag_client=rag_client,
            embed_client=embed_client,
            tracer=tracer,
        )

    def register_consumers(self) -> None:
        """Subscribe every stage to the message type it consumes."""
        self.bus.subscribe(CrackDocumentMessage, self.cracker.process_document)
        self.bus.subscribe(DocumentReadyForChunkingMessage, self.chunking.process_document)
        self.bus.subscribe(ChunkReadyForEmbeddingMessage, self.embedding.process_chunk)
        self.bus.subscribe(ConversationMessageReadyForEmbeddingMessage, self.conversation_embedding.process_message)
        self.logging.debug("Pipeline consumers registered.")
