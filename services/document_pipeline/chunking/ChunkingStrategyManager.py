from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from services.document_pipeline.chunking.ChunkingStrategy import ChunkingStrategy
from services.document_pipeline.chunking.OverlapChunkingStrategy import OverlapChunkingStrategy
from services.document_pipeline.chunking.SemanticChunkingStrategy import SemanticChunkingStrategy
from services.document_pipeline.chunking.SeparatorSlicerStrategy import SeparatorSlicerStrategy


class ChunkingStrategyManager:
    """
    Selects the chunking strategy named in CHUNKING_STRATEGY ("slicer", "overlap" or "semantic").
    """

    def __init__(self, helper_config: HelperConfig, embed_client: EmbedClientInterface | None = None):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self._embed_client = embed_client
        self.strategy = self._initialize_strategy()

    def _initialize_strategy(self) -> ChunkingStrategy:
        """
        Raises:
            ValueError: If the strategy is unknown, or "semantic" is requested without an embed client.
        """
        name = self.helper_config.get_string_val("CHUNKING_STRATEGY", default="slicer").strip().lower()
        if name == "slicer":
            strategy = SeparatorSlicerStrategy(helper_config=self.helper_config)
        elif name == "overlap":
            strategy = OverlapChunkingStrategy(helper_config=self.helper_config)
        elif name == "semantic":
            if self._embed_client is None:
                raise ValueError("Chunking strategy 'semantic' needs an embed client.")
            strategy = SemanticChunkingStrategy(helper_config=self.helper_config, embed_client=self._embed_client)
        else:
            raise ValueError(f"Unsupported chunking strategy specified: '{name}'.")
        self.logging.debug("Using chunking strategy: %s", strategy.name)
        return strategy

    def get_strategy(self) -> ChunkingStrategy:
        return self.strategy
