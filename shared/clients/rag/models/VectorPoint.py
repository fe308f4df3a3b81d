"""Vector points and the payload schemas stored alongside them."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from shared.models.errors import PayloadValidationError


class RuleChunkPayload(BaseModel):
    """Payload of a document chunk in the document collection.

    Serialised with camelCase keys; every value is written as a string.
    ``rulesetId`` is the scope key used by retrieval filters.
    """

    model_config = ConfigDict(populate_by_name=True)

    chunk_id: str = Field(alias="chunkId", min_length=1)
    chunk_index: int = Field(alias="chunkIndex", ge=0)
    chunk_text: str = Field(alias="chunkText")
    document_id: str = Field(alias="documentId", min_length=1)
    file_name: str = Field(alias="fileName")
    ruleset_id: str = Field(alias="rulesetId", min_length=1)
    file_size: int = Field(alias="fileSize", default=0)
    document_kind: str = Field(alias="documentKind")
    embedded_at: str = Field(alias="embeddedAt")
    page_number: int | None = Field(alias="pageNumber", default=None)


class ConversationPayload(BaseModel):
    """Payload of a transcript message in the conversation collection.

    ``gameId`` is the scope key used by retrieval filters.
    """

    model_config = ConfigDict(populate_by_name=True)

    message_id: int = Field(alias="messageId")
    game_id: int = Field(alias="gameId")
    text: str
    role: str
    created_at: str = Field(alias="createdAt")
    embedded_at: str = Field(alias="embeddedAt")


class VectorPoint(BaseModel):
    """A single point ready for upsert: id, dense vector and string payload."""

    point_id: int = Field(ge=1)
    vector: list[float] = Field(min_length=1)
    payload: dict[str, str]

    @field_validator("payload", mode="before")
    @classmethod
    def _payload_values_are_strings(cls, value: Any) -> Any:
        if isinstance(value, dict):
            bad = [k for k, v in value.items() if not isinstance(v, str)]
            if bad:
                raise ValueError(f"payload values must be strings, offending keys: {bad}")
        return value

    @classmethod
    def create(cls, point_id: int, vector: list[float], payload: BaseModel | dict) -> "VectorPoint":
        """Build a point from a payload model, converting every value to a string.

        Args:
            point_id (int): Deterministic point id.
            vector (list[float]): The embedding.
            payload (BaseModel | dict): A payload model, or a raw payload dict
                                        (validated as is).

        Returns:
            VectorPoint: The validated point.

        Raises:
            PayloadValidationError: If the payload or vector is invalid.
        """
        if isinstance(payload, BaseModel):
            raw = payload.model_dump(by_alias=True, exclude_none=True)
            payload = {k: str(v) for k, v in raw.items()}
        try:
            return cls(point_id=point_id, vector=vector, payload=payload)
        except ValidationError as exc:
            raise PayloadValidationError(f"Invalid vector point {point_id}: {exc}") from exc

    def to_request_point(self) -> dict[str, Any]:
        return {"id": self.point_id, "vector": self.vector, "payload": self.payload}


def build_rule_chunk_payload(**fields: Any) -> RuleChunkPayload:
    """Validate the fields of a rule chunk payload.

    Raises:
        PayloadValidationError: If a required key is missing or invalid.
    """
    try:
        return RuleChunkPayload(**fields)
    except ValidationError as exc:
        raise PayloadValidationError(f"Invalid rule chunk payload: {exc}") from exc


def build_conversation_payload(**fields: Any) -> ConversationPayload:
    """Validate the fields of a conversation payload.

    Raises:
        PayloadValidationError: If a required key is missing or invalid.
    """
    try:
        return ConversationPayload(**fields)
    except ValidationError as exc:
        raise PayloadValidationError(f"Invalid conversation payload: {exc}") from exc
