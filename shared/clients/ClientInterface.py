from abc import ABC, abstractmethod
from typing import Any

import httpx

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.errors import PipelineError, TransientInfraError


class ClientInterface(ABC):
    """Base of the HTTP backends of the pipeline (vector index, embedding model).

    Settings are read from ``<TYPE>_<ENGINE>_<KEY>`` environment variables,
    e.g. ``RAG_QDRANT_BASE_URL`` or ``EMBED_OLLAMA_BASE_URL``. The request
    timeout comes from ``<TYPE>_TIMEOUT``.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)

        self._client: httpx.AsyncClient | None = None
        self._transport: httpx.AsyncBaseTransport | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """Read every required setting once so a missing one fails at construction.

        Raises:
            ValueError: If a required setting is missing or has the wrong type.
        """
        for config in self._get_required_config():
            self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """Lowercase client type, "rag" or "embed"."""
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        pass

    def get_engine_name(self) -> str:
        """Lowercase engine name, e.g. "qdrant" or "ollama"."""
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """Settings the engine needs, without the type and engine prefix."""
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        return f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """Read one engine setting.

        Args:
            raw_key (str): Setting name without prefix, e.g. "BASE_URL".
            default (Any): Value used when the variable is unset; None makes it required.
            val_type (str): One of "string", "number", "bool", "list".
        """
        key = self._get_config_key_name(raw_key)
        readers = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
            "list": self._helper_config.get_list_val,
        }
        reader = readers.get(val_type)
        if reader is None:
            raise ValueError(f"Unsupported config value type '{val_type}' for {key}.")
        return reader(key, default=default)

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """Auth headers for the backend, empty when no API key is configured."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        """Ping the backend.

        Raises:
            TransientInfraError: If the backend is unreachable or answers with a 5xx status.
            PipelineError: If it answers with any other non-2xx status.
        """
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck(), raise_on_error=True)

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    def set_transport(self, transport: httpx.AsyncBaseTransport | None) -> None:
        """Transport for the next boot(), e.g. an httpx.MockTransport in tests."""
        self._transport = transport

    async def boot(self) -> None:
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_request(
        self,
        method: str = "GET",
        endpoint: str = "",
        json: dict | None = None,
        content: str | bytes | None = None,
        params: dict | None = None,
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send one request to the backend.

        Connection failures always raise. Status codes only raise when
        ``raise_on_error`` is set; otherwise the caller inspects the response
        (e.g. a 404 when looking up a collection).

        Args:
            method: HTTP method.
            endpoint: Path below the base URL.
            json: JSON body.
            content: Pre-serialised body, takes precedence over ``json``.
            params: Query parameters.
            additional_headers: Headers added on top of the auth header.
            raise_on_error: Raise on any status >= 300.

        Raises:
            PipelineError: If the client was not booted, or on a 3xx/4xx status.
            TransientInfraError: If the backend is unreachable, or on a 5xx status.
        """
        if self._client is None:
            raise PipelineError(f"{self.get_client_type().upper()} client not booted.")

        endpoint = endpoint.strip()
        url = f"{self._get_base_url().rstrip('/')}/{endpoint.lstrip('/')}" if endpoint else self._get_base_url().rstrip("/")
        headers = {**self._get_auth_header(), **(additional_headers or {})}

        kwargs: dict = {"headers": headers, "params": params}
        if content is not None:
            kwargs["content"] = content
        elif json is not None:
            kwargs["json"] = json

        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            self.logging.error("%s %s could not be sent: %s", method, url, exc)
            raise TransientInfraError(
                f"{self.get_client_type().upper()} backend '{self.get_engine_name()}' is unreachable: {exc}"
            ) from exc

        if raise_on_error and response.status_code >= 300:
            self.logging.error("%s %s failed with status %d: %s", method, url, response.status_code, response.text[:500])
            error_class = TransientInfraError if response.status_code >= 500 else PipelineError
            raise error_class(f"{method} {url} failed with status {response.status_code}")

        return response
