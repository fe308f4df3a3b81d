from typing import Any

from pydantic import BaseModel


class SearchHit(BaseModel):
    """A scored point returned by a vector search, in index order."""

    point_id: int | str
    score: float
    payload: dict[str, Any] = {}
