from datetime import datetime

from pydantic import BaseModel


class ScanRequest(BaseModel):
    # run the scan inside the request and return its summary
    wait: bool = False
    content_directory: str | None = None


class ConversationMessageRequest(BaseModel):
    message_id: int
    game_id: int
    text: str
    role: str = "user"
    created_at: datetime
