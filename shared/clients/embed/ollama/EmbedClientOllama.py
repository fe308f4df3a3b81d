from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.errors import EmbeddingError


class EmbedClientOllama(EmbedClientInterface):
    """Embeddings from a local or remote Ollama server.

    Optional settings: EMBED_OLLAMA_KEEP_ALIVE (how long Ollama keeps the
    model loaded, e.g. "10m") and EMBED_OLLAMA_TRUNCATE (false makes Ollama
    reject chunks longer than the model context instead of cutting them).
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._keep_alive = self.get_config_val("KEEP_ALIVE", default="", val_type="string")
        self._truncate = self.get_config_val("TRUNCATE", default=True, val_type="bool")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="KEEP_ALIVE", val_type="string", default=""),
            EnvConfig(env_key="TRUNCATE", val_type="bool", default=True),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        # only set when Ollama sits behind an authenticating proxy
        return {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/api/version"

    def get_endpoint_embedding(self) -> str:
        return "/api/embed"

    def get_endpoint_model_details(self) -> str:
        return "/api/show"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str]) -> dict:
        payload: dict = {"model": self.embed_model, "input": texts}
        if self._keep_alive:
            payload["keep_alive"] = self._keep_alive
        if not self._truncate:
            payload["truncate"] = False
        return payload

    def get_model_details_payload(self) -> dict:
        return {"name": self.embed_model}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_vector_size_from_model_info(self, model_info: dict) -> int | None:
        """Read "<architecture>.embedding_length" from an /api/show response."""
        details = model_info.get("model_info") or {}
        architecture = details.get("general.architecture")
        if architecture and f"{architecture}.embedding_length" in details:
            return int(details[f"{architecture}.embedding_length"])
        for key, value in details.items():
            if key.endswith(".embedding_length"):
                return int(value)
        return None

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Vectors of an /api/embed response, in input order.

        Raises:
            EmbeddingError: If "embeddings" is missing, empty, or holds non-numeric values.
        """
        embeddings = response_data.get("embeddings")
        if not embeddings or not isinstance(embeddings, list):
            raise EmbeddingError(
                f"Ollama returned no embeddings for model '{self.embed_model}' "
                f"(response keys: {sorted(response_data)})."
            )
        for vector in embeddings:
            if not isinstance(vector, list) or not all(isinstance(v, (int, float)) for v in vector):
                raise EmbeddingError(f"Ollama returned a malformed vector for model '{self.embed_model}'.")
        return [[float(v) for v in vector] for vector in embeddings]
