from abc import abstractmethod

import httpx
from typing import Tuple
from shared.clients.ClientInterface import ClientInterface
from shared.models.errors import EmbeddingError, TransientInfraError

from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model and embedding config
        self.embed_distance = helper_config.get_string_val(f"{self.get_client_type().upper()}_DISTANCE", default="Cosine")
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL", default=None)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "embed"
        """
        return "embed"

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests.

        Returns:
            str: The endpoint path for embedding requests (e.g. "/api/embed")
        """
        pass

    @abstractmethod
    def get_endpoint_model_details(self) -> str:
        """
        Returns the endpoint path for model details requests.

        Returns:
            str: The endpoint path for model details requests (e.g. "/api/show")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            dict: JSON-serialisable request body (e.g. {"model": "...", "input": [...]}).
        """
        pass

    @abstractmethod
    def get_model_details_payload(self) -> dict:
        """Build the backend-specific request body for a model details request."""
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_vector_size_from_model_info(self, model_info: dict) -> int | None:
        """
        Extracts the embedding vector size from the model information response.

        Args:
            model_info (dict): The raw response from the model details endpoint.

        Returns:
            int | None: The dimension of the embedding vectors, None if the response does not tell.
        """
        pass

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            EmbeddingError: If the response format is invalid or embeddings are empty.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_fetch_embedding_vector_size(self) -> Tuple[int, str]:
        """
        Fetch the output vector dimension and distance metric of the configured embedding model.

        Falls back to embedding a sample text if the model details do not report
        the dimension.

        Returns:
            Tuple[int, str]: The number of dimensions produced by the embedding model and the distance metric.

        Raises:
            TransientInfraError: If the backend cannot be reached.
            EmbeddingError: If the dimension cannot be determined.
        """
        response = await self.do_request(
            method="POST",
            json=self.get_model_details_payload(),
            endpoint=self.get_endpoint_model_details(),
        )
        vector_size = None
        if response.is_success:
            vector_size = self.extract_vector_size_from_model_info(model_info=response.json())
        else:
            self.logging.warning(
                "Model details for '%s' not available (status %d), measuring a sample embedding.",
                self.embed_model, response.status_code,
            )
        if not vector_size:
            vector_size = len(await self.do_embed_one("dimension check"))
        return vector_size, self.embed_distance

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        """Send an embedding request and return the extracted vectors.

        Normalises the input to a list, builds the backend-specific payload via
        get_embed_payload(), sends the request, validates the status, and extracts
        the vectors via extract_embeddings_from_response().

        Args:
            texts (list[str] | str): One or more texts to embed.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the inputs.

        Raises:
            TransientInfraError: If the model backend is unreachable or answers with 5xx.
            EmbeddingError: If the request fails otherwise or the response holds no valid vectors.
        """
        texts = [texts] if isinstance(texts, str) else texts
        body = self.get_embed_payload(texts)
        response: httpx.Response = await self.do_request(method="POST", endpoint=self.get_endpoint_embedding(), json=body)
        if response.status_code != 200:
            self.logging.error(
                "Embedding request failed: status %d, body: %s",
                response.status_code,
                response.text[:200],
            )
            if response.status_code >= 500:
                raise TransientInfraError("Embedding request failed with status %d." % response.status_code)
            raise EmbeddingError("Embedding request failed with status %d." % response.status_code)
        embeddings = self.extract_embeddings_from_response(response.json())
        if len(embeddings) != len(texts) or any(not vector for vector in embeddings):
            raise EmbeddingError(
                f"Embedding model '{self.embed_model}' returned {len(embeddings)} vector(s) for {len(texts)} text(s), "
                "or an empty vector."
            )
        return embeddings

    async def do_embed_one(self, text: str) -> list[float]:
        """Embed a single text and return its vector."""
        return (await self.do_embed([text]))[0]
