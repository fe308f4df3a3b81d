from abc import abstractmethod
import json

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.SearchHit import SearchHit
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import EmbeddingDimensionError, PipelineError, TransientInfraError


class RAGClientInterface(ClientInterface):
    """Gateway to a vector index: collections, upserts and filtered similarity search."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        # collections known to exist, with their dimension
        self._known_collections: dict[str, int] = {}

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "rag"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_collection(self, collection: str) -> str:
        """
        Returns the endpoint path for collection info and create requests.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col")
        """
        pass

    @abstractmethod
    def _get_endpoint_points(self, collection: str) -> str:
        """
        Returns the endpoint path for points upsert requests.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points")
        """
        pass

    @abstractmethod
    def _get_endpoint_search(self, collection: str) -> str:
        """
        Returns the endpoint path for similarity search requests.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points/search")
        """
        pass

    @abstractmethod
    def _get_endpoint_delete_points(self, collection: str) -> str:
        """
        Returns the endpoint path for deleting points by id.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points/delete")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_create_collection_payload(self, dimension: int, distance: str) -> dict:
        """Builds the backend-specific body for creating a collection."""
        pass

    @abstractmethod
    def get_upsert_payload(self, points: list[VectorPoint]) -> dict:
        """Builds the backend-specific body for an upsert."""
        pass

    @abstractmethod
    def get_search_payload(self, vector: list[float], filters: dict[str, str] | None, limit: int) -> dict:
        """
        Builds the backend-specific body for a similarity search.

        Args:
            vector (list[float]): The query vector.
            filters (dict[str, str] | None): Exact-match payload conditions, combined with AND.
            limit (int): Maximum number of hits.

        Returns:
            dict: The search request body.
        """
        pass

    @abstractmethod
    def get_delete_payload(self, point_ids: list[int]) -> dict:
        """Builds the backend-specific body for deleting points by id."""
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_collection_dimension(self, raw_info: dict) -> int | None:
        """Extracts the configured vector size from a collection info response."""
        pass

    @abstractmethod
    def extract_search_hits(self, raw_response: dict) -> list[SearchHit]:
        """Extracts the scored hits, in index order, from a search response."""
        pass

    @abstractmethod
    def is_already_exists_response(self, response: httpx.Response) -> bool:
        """Tells whether a failed create request means the collection already exists."""
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_get_collection_info(self, collection: str) -> dict | None:
        """Fetch the description of a collection.

        Args:
            collection (str): Collection name.

        Returns:
            dict | None: The raw collection info, or None if the collection does not exist.

        Raises:
            TransientInfraError: If the backend is unreachable or answers with 5xx.
            PipelineError: On any other unexpected status.
        """
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_collection(collection))
        if resp.status_code == 404:
            return None
        if resp.status_code >= 500:
            raise TransientInfraError(
                f"Collection lookup for '{collection}' failed with status {resp.status_code}: {resp.text[:200]}"
            )
        if resp.status_code >= 300:
            raise PipelineError(
                f"Collection lookup for '{collection}' failed with status {resp.status_code}: {resp.text[:200]}"
            )
        return resp.json()

    async def get_collection_dimension(self, collection: str) -> int | None:
        """Return the vector size of a collection, or None if it does not exist."""
        info = await self.do_get_collection_info(collection)
        if info is None:
            self._known_collections.pop(collection, None)
            return None
        dimension = self.extract_collection_dimension(info)
        if dimension:
            self._known_collections[collection] = dimension
        return dimension

    async def do_ensure_collection(self, collection: str, dimension: int, distance: str = "Cosine") -> bool:
        """Make sure a collection exists with the given dimension.

        Safe to call repeatedly and concurrently: a create that loses the race
        against another writer ("already exists") counts as success.

        Args:
            collection (str): Collection name.
            dimension (int): Vector size, taken from the embedding model.
            distance (str): Distance metric.

        Returns:
            bool: True if this call created the collection, False if it already existed.

        Raises:
            EmbeddingDimensionError: If the existing collection has a different dimension.
            TransientInfraError: If the backend is unreachable or answers with 5xx.
            PipelineError: If the collection could not be created.
        """
        if self._known_collections.get(collection) == dimension:
            return False

        existing_dimension = await self.get_collection_dimension(collection)
        if existing_dimension is not None:
            if existing_dimension != dimension:
                raise EmbeddingDimensionError(collection=collection, expected=existing_dimension, actual=dimension)
            return False

        self.logging.info(
            "Collection '%s' not found in %s, creating it (dimension=%d, distance=%s).",
            collection, self.get_engine_name(), dimension, distance,
        )
        resp = await self.do_request(
            method="PUT",
            json=self.get_create_collection_payload(dimension, distance),
            endpoint=self._get_endpoint_collection(collection),
        )
        if resp.is_success:
            self._known_collections[collection] = dimension
            return True
        if self.is_already_exists_response(resp):
            self.logging.info("Collection '%s' was created concurrently, continuing.", collection)
            self._known_collections[collection] = dimension
            return False
        if resp.status_code >= 500:
            raise TransientInfraError(
                f"Creating collection '{collection}' failed with status {resp.status_code}: {resp.text[:200]}"
            )
        raise PipelineError(
            f"Creating collection '{collection}' failed with status {resp.status_code}: {resp.text[:200]}"
        )

    async def do_upsert_points(self, collection: str, points: list[VectorPoint]) -> httpx.Response | None:
        """Upsert points into a collection.
        Inserts new points or replaces existing ones with the same id.

        Args:
            collection (str): Collection name.
            points (list[VectorPoint]): The validated points to upsert.

        Returns:
            httpx.Response | None: The response from the upsert request, None if there was nothing to send.
        """
        if not points:
            return None
        return await self.do_request(
            method="PUT",
            content=json.dumps(self.get_upsert_payload(points)),
            endpoint=self._get_endpoint_points(collection),
            params={"wait": "true"},
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )

    async def do_search(
        self,
        collection: str,
        vector: list[float],
        filters: dict[str, str] | None = None,
        limit: int = 5,
    ) -> list[SearchHit]:
        """Similarity search with optional exact-match payload filters.

        Args:
            collection (str): Collection name.
            vector (list[float]): The query vector.
            filters (dict[str, str] | None): Payload key/value pairs that all have to match.
            limit (int): Maximum number of hits.

        Returns:
            list[SearchHit]: Hits in the order returned by the index.
        """
        resp = await self.do_request(
            method="POST",
            content=json.dumps(self.get_search_payload(vector, filters, limit)),
            endpoint=self._get_endpoint_search(collection),
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )
        return self.extract_search_hits(resp.json())

    async def do_delete_points(self, collection: str, point_ids: list[int]) -> None:
        """Delete points by id. Missing ids are ignored by the backend.

        Args:
            collection (str): Collection name.
            point_ids (list[int]): The point ids to delete.
        """
        if not point_ids:
            return
        await self.do_request(
            method="POST",
            content=json.dumps(self.get_delete_payload(point_ids)),
            endpoint=self._get_endpoint_delete_points(collection),
            params={"wait": "true"},
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )
