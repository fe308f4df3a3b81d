import httpx

from shared.helper.HelperConfig import HelperConfig
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.SearchHit import SearchHit
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.models.config import EnvConfig


class RAGClientQdrant(RAGClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Qdrant"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"api-key": f"{self._api_key}"}
        else:
            return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_collection(self, collection: str) -> str:
        return f"/collections/{collection}"

    def _get_endpoint_points(self, collection: str) -> str:
        return f"/collections/{collection}/points"

    def _get_endpoint_search(self, collection: str) -> str:
        return f"/collections/{collection}/points/search"

    def _get_endpoint_delete_points(self, collection: str) -> str:
        return f"/collections/{collection}/points/delete"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_create_collection_payload(self, dimension: int, distance: str) -> dict:
        return {"vectors": {"size": dimension, "distance": distance}}

    def get_upsert_payload(self, points: list[VectorPoint]) -> dict:
        return {"points": [point.to_request_point() for point in points]}

    def get_search_payload(self, vector: list[float], filters: dict[str, str] | None, limit: int) -> dict:
        payload = {
            "vector": vector,
            "limit": limit,
            "with_payload": True,
            "with_vector": False,
        }
        if filters:
            payload["filter"] = {
                "must": [{"key": key, "match": {"value": value}} for key, value in filters.items()]
            }
        return payload

    def get_delete_payload(self, point_ids: list[int]) -> dict:
        return {"points": point_ids}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_collection_dimension(self, raw_info: dict) -> int | None:
        vectors = (
            raw_info.get("result", {})
            .get("config", {})
            .get("params", {})
            .get("vectors", {})
        )
        if "size" in vectors:
            return int(vectors["size"])
        # named vectors: {"name": {"size": ..., "distance": ...}}
        for params in vectors.values():
            if isinstance(params, dict) and "size" in params:
                return int(params["size"])
        return None

    def extract_search_hits(self, raw_response: dict) -> list[SearchHit]:
        result = raw_response.get("result") or []
        # newer query endpoints wrap hits in {"points": [...]}
        if isinstance(result, dict):
            result = result.get("points", [])
        return [
            SearchHit(
                point_id=hit.get("id"),
                score=float(hit.get("score", 0.0)),
                payload=hit.get("payload") or {},
            )
            for hit in result
        ]

    def is_already_exists_response(self, response: httpx.Response) -> bool:
        if response.status_code == 409:
            return True
        return response.status_code == 400 and "already exists" in response.text.lower()
