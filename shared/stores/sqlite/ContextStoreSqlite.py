"""SQLite reader for game transcripts.

The messages table is owned by the chat layer; this store only reads it.
``initialize`` creates the table when it is missing so a fresh local
setup can start without the chat layer.
"""

from datetime import datetime
from pathlib import Path

import aiosqlite

from shared.helper.HelperConfig import HelperConfig
from shared.models.search import ContextMessage
from shared.stores.ContextStoreInterface import ContextStoreInterface

_CREATE_MESSAGES_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS messages (
    id                INTEGER PRIMARY KEY,
    game_id           INTEGER NOT NULL,
    text              TEXT    NOT NULL,
    role              TEXT    NOT NULL DEFAULT 'user',
    participant_name  TEXT,
    created_at        TEXT    NOT NULL
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_messages_game_created ON messages(game_id, created_at, id);",
]

_MESSAGE_COLUMNS = "id, game_id, text, role, participant_name, created_at"

_SELECT_MESSAGE_SQL = f"SELECT {_MESSAGE_COLUMNS} FROM messages WHERE id = ?;"

_SELECT_PREVIOUS_SQL = f"""\
SELECT {_MESSAGE_COLUMNS} FROM messages
WHERE game_id = ? AND (created_at < ? OR (created_at = ? AND id < ?))
ORDER BY created_at DESC, id DESC
LIMIT 1;
"""

_SELECT_NEXT_SQL = f"""\
SELECT {_MESSAGE_COLUMNS} FROM messages
WHERE game_id = ? AND (created_at > ? OR (created_at = ? AND id > ?))
ORDER BY created_at ASC, id ASC
LIMIT 1;
"""


class ContextStoreSqlite(ContextStoreInterface):
    """SQLite-backed transcript reader."""

    def __init__(self, helper_config: HelperConfig, db_path: str | Path | None = None) -> None:
        self.logging = helper_config.get_logger()
        if db_path is None:
            db_path = helper_config.get_path_val("CONTEXT_DB_PATH", default="data/context.db")
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_MESSAGES_TABLE_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()

    @staticmethod
    def _row_to_message(row: aiosqlite.Row | None) -> ContextMessage | None:
        if row is None:
            return None
        return ContextMessage(
            message_id=row["id"],
            game_id=row["game_id"],
            text=row["text"],
            role=row["role"],
            participant_name=row["participant_name"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    async def get_message(self, message_id: int) -> ContextMessage | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_MESSAGE_SQL, (message_id,))
            return self._row_to_message(await cursor.fetchone())

    async def get_message_neighbors(self, message: ContextMessage) -> tuple[ContextMessage | None, ContextMessage | None]:
        created = message.created_at.isoformat()
        params = (message.game_id, created, created, message.message_id)
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_PREVIOUS_SQL, params)
            previous = self._row_to_message(await cursor.fetchone())
            cursor = await db.execute(_SELECT_NEXT_SQL, params)
            following = self._row_to_message(await cursor.fetchone())
        return previous, following
