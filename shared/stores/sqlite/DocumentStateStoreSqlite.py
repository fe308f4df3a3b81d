"""SQLite-backed document-state store.

Keeps file hashes, extracted documents and their chunks in a local SQLite
database. Uses ``aiosqlite`` for async I/O; every call opens its own
connection, so concurrent workers never share a cursor.
"""

from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from shared.helper.HelperConfig import HelperConfig
from shared.models.document import ExtractedDocument, FileChangeRecord, TextChunk
from shared.stores.DocumentStateStoreInterface import DocumentStateStoreInterface

_CREATE_FILE_RECORDS_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS file_change_records (
    file_path        TEXT PRIMARY KEY,
    file_hash        TEXT NOT NULL,
    last_modified    TEXT,
    last_scanned_at  TEXT
);
"""

_CREATE_DOCUMENTS_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS extracted_documents (
    document_id            TEXT PRIMARY KEY,
    file_path              TEXT NOT NULL,
    file_name              TEXT NOT NULL,
    relative_directory     TEXT,
    ruleset_id             TEXT NOT NULL,
    document_kind          TEXT NOT NULL,
    content                TEXT NOT NULL,
    page_count             INTEGER NOT NULL DEFAULT 0,
    file_size              INTEGER NOT NULL DEFAULT 0,
    cracked_at             TEXT,
    total_chunk_count      INTEGER NOT NULL DEFAULT 0,
    processed_chunk_count  INTEGER NOT NULL DEFAULT 0,
    is_fully_processed     INTEGER NOT NULL DEFAULT 0,
    created_at             TEXT NOT NULL,
    updated_at             TEXT NOT NULL
);
"""

_CREATE_CHUNKS_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS text_chunks (
    chunk_id         TEXT PRIMARY KEY,
    document_id      TEXT NOT NULL REFERENCES extracted_documents(document_id),
    chunk_index      INTEGER NOT NULL,
    text             TEXT NOT NULL,
    page_number      INTEGER,
    vector_point_id  TEXT,
    created_at       TEXT NOT NULL
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_documents_file_path ON extracted_documents(file_path);",
    "CREATE INDEX IF NOT EXISTS idx_chunks_document ON text_chunks(document_id, chunk_index);",
]

_UPSERT_FILE_RECORD_SQL = """\
INSERT INTO file_change_records (file_path, file_hash, last_modified, last_scanned_at)
VALUES (?, ?, ?, ?)
ON CONFLICT(file_path) DO UPDATE SET
    file_hash = excluded.file_hash,
    last_modified = excluded.last_modified,
    last_scanned_at = excluded.last_scanned_at;
"""

_SELECT_FILE_RECORD_SQL = """\
SELECT file_path, file_hash, last_modified, last_scanned_at
FROM file_change_records
WHERE file_path = ?;
"""

_DOCUMENT_COLUMNS = (
    "document_id, file_path, file_name, relative_directory, ruleset_id, document_kind, content, "
    "page_count, file_size, cracked_at, total_chunk_count, processed_chunk_count, is_fully_processed, "
    "created_at, updated_at"
)

_UPSERT_DOCUMENT_SQL = f"""\
INSERT INTO extracted_documents ({_DOCUMENT_COLUMNS})
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, 0, 0, ?, ?)
ON CONFLICT(document_id) DO UPDATE SET
    file_path = excluded.file_path,
    file_name = excluded.file_name,
    relative_directory = excluded.relative_directory,
    ruleset_id = excluded.ruleset_id,
    document_kind = excluded.document_kind,
    content = excluded.content,
    page_count = excluded.page_count,
    file_size = excluded.file_size,
    cracked_at = excluded.cracked_at,
    total_chunk_count = 0,
    processed_chunk_count = 0,
    is_fully_processed = 0,
    updated_at = excluded.updated_at;
"""

_SELECT_DOCUMENT_SQL = f"SELECT {_DOCUMENT_COLUMNS} FROM extracted_documents WHERE document_id = ?;"

_SELECT_DOCUMENT_BY_PATH_SQL = f"""\
SELECT {_DOCUMENT_COLUMNS} FROM extracted_documents
WHERE file_path = ?
ORDER BY updated_at DESC
LIMIT 1;
"""

# the processed count is rebuilt from the chunks that already hold a point id
_SET_TOTAL_CHUNKS_SQL = """\
UPDATE extracted_documents
SET total_chunk_count = ?1,
    processed_chunk_count = MIN(?1, (
        SELECT COUNT(*) FROM text_chunks
        WHERE document_id = ?3 AND vector_point_id IS NOT NULL
    )),
    updated_at = ?2
WHERE document_id = ?3;
"""

_REFRESH_COMPLETION_SQL = """\
UPDATE extracted_documents
SET is_fully_processed = CASE
    WHEN total_chunk_count > 0 AND processed_chunk_count = total_chunk_count THEN 1
    ELSE 0
END
WHERE document_id = ?;
"""

_CLAIM_CHUNK_SQL = """\
UPDATE text_chunks
SET vector_point_id = ?
WHERE chunk_id = ? AND vector_point_id IS NULL;
"""

# old column values are used on the right-hand side, so the flag sees the incremented count
_INCREMENT_PROCESSED_SQL = """\
UPDATE extracted_documents
SET processed_chunk_count = processed_chunk_count + 1,
    is_fully_processed = CASE
        WHEN total_chunk_count > 0 AND processed_chunk_count + 1 = total_chunk_count THEN 1
        ELSE 0
    END,
    updated_at = ?
WHERE document_id = ? AND processed_chunk_count < total_chunk_count;
"""

_UPSERT_CHUNK_SQL = """\
INSERT INTO text_chunks (chunk_id, document_id, chunk_index, text, page_number, vector_point_id, created_at)
VALUES (?, ?, ?, ?, ?, NULL, ?)
ON CONFLICT(chunk_id) DO UPDATE SET
    document_id = excluded.document_id,
    chunk_index = excluded.chunk_index,
    text = excluded.text,
    page_number = excluded.page_number,
    vector_point_id = NULL;
"""

_CHUNK_COLUMNS = "chunk_id, document_id, chunk_index, text, page_number, vector_point_id, created_at"

_SELECT_STALE_CHUNKS_SQL = f"""\
SELECT {_CHUNK_COLUMNS} FROM text_chunks
WHERE document_id = ? AND chunk_index >= ?
ORDER BY chunk_index;
"""

_DELETE_STALE_CHUNKS_SQL = "DELETE FROM text_chunks WHERE document_id = ? AND chunk_index >= ?;"

_SELECT_CHUNK_SQL = f"SELECT {_CHUNK_COLUMNS} FROM text_chunks WHERE chunk_id = ?;"

_SELECT_CHUNKS_SQL = f"SELECT {_CHUNK_COLUMNS} FROM text_chunks WHERE document_id = ? ORDER BY chunk_index;"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class DocumentStateStoreSqlite(DocumentStateStoreInterface):
    """SQLite document-state store."""

    def __init__(self, helper_config: HelperConfig, db_path: str | Path | None = None) -> None:
        self.logging = helper_config.get_logger()
        if db_path is None:
            db_path = helper_config.get_path_val("STATE_DB_PATH", default="data/document_state.db")
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("PRAGMA journal_mode=WAL;")
            await db.execute(_CREATE_FILE_RECORDS_TABLE_SQL)
            await db.execute(_CREATE_DOCUMENTS_TABLE_SQL)
            await db.execute(_CREATE_CHUNKS_TABLE_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        self.logging.info("Document state store initialised at %s", self._db_path)

    ##########################################
    ########### FILE CHANGE RECORDS ##########
    ##########################################

    async def get_file_record(self, file_path: str) -> FileChangeRecord | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_FILE_RECORD_SQL, (file_path,))
            row = await cursor.fetchone()
        if row is None:
            return None
        return FileChangeRecord(
            file_path=row["file_path"],
            file_hash=row["file_hash"],
            last_modified=_parse_dt(row["last_modified"]),
            last_scanned_at=_parse_dt(row["last_scanned_at"]),
        )

    async def upsert_file_record(self, record: FileChangeRecord) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                _UPSERT_FILE_RECORD_SQL,
                (
                    record.file_path,
                    record.file_hash,
                    record.last_modified.isoformat() if record.last_modified else None,
                    (record.last_scanned_at or datetime.now(timezone.utc)).isoformat(),
                ),
            )
            await db.commit()

    ##########################################
    ############### DOCUMENTS ################
    ##########################################

    @staticmethod
    def _row_to_document(row: aiosqlite.Row) -> ExtractedDocument:
        return ExtractedDocument(
            document_id=row["document_id"],
            file_path=row["file_path"],
            file_name=row["file_name"],
            relative_directory=row["relative_directory"],
            ruleset_id=row["ruleset_id"],
            document_kind=row["document_kind"],
            content=row["content"],
            page_count=row["page_count"],
            file_size=row["file_size"],
            cracked_at=_parse_dt(row["cracked_at"]),
            total_chunk_count=row["total_chunk_count"],
            processed_chunk_count=row["processed_chunk_count"],
            is_fully_processed=bool(row["is_fully_processed"]),
            created_at=_parse_dt(row["created_at"]),
            updated_at=_parse_dt(row["updated_at"]),
        )

    async def get_document(self, document_id: str) -> ExtractedDocument | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_DOCUMENT_SQL, (document_id,))
            row = await cursor.fetchone()
        return self._row_to_document(row) if row else None

    async def get_document_by_path(self, file_path: str) -> ExtractedDocument | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_DOCUMENT_BY_PATH_SQL, (file_path,))
            row = await cursor.fetchone()
        return self._row_to_document(row) if row else None

    async def upsert_document(self, document: ExtractedDocument) -> None:
        now = _now()
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                _UPSERT_DOCUMENT_SQL,
                (
                    document.document_id,
                    document.file_path,
                    document.file_name,
                    document.relative_directory,
                    document.ruleset_id,
                    document.document_kind,
                    document.content,
                    document.page_count,
                    document.file_size,
                    document.cracked_at.isoformat() if document.cracked_at else None,
                    now,
                    now,
                ),
            )
            await db.commit()

    @staticmethod
    async def _set_total(db: aiosqlite.Connection, document_id: str, total: int) -> None:
        await db.execute(_SET_TOTAL_CHUNKS_SQL, (total, _now(), document_id))
        await db.execute(_REFRESH_COMPLETION_SQL, (document_id,))

    async def set_total_chunk_count(self, document_id: str, total: int) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("BEGIN IMMEDIATE;")
            await self._set_total(db, document_id, total)
            await db.commit()

    ##########################################
    ################ CHUNKS ##################
    ##########################################

    @staticmethod
    def _row_to_chunk(row: aiosqlite.Row) -> TextChunk:
        point_id = row["vector_point_id"]
        return TextChunk(
            chunk_id=row["chunk_id"],
            document_id=row["document_id"],
            chunk_index=row["chunk_index"],
            text=row["text"],
            page_number=row["page_number"],
            # u64 point ids do not fit SQLite's signed INTEGER, so they are stored as text
            vector_point_id=int(point_id) if point_id is not None else None,
            created_at=_parse_dt(row["created_at"]),
        )

    async def save_chunks(self, document_id: str, chunks: list[TextChunk]) -> list[TextChunk]:
        now = _now()
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("BEGIN IMMEDIATE;")
            await db.executemany(
                _UPSERT_CHUNK_SQL,
                [
                    (c.chunk_id, document_id, c.chunk_index, c.text, c.page_number, now)
                    for c in chunks
                ],
            )
            cursor = await db.execute(_SELECT_STALE_CHUNKS_SQL, (document_id, len(chunks)))
            stale = [self._row_to_chunk(row) for row in await cursor.fetchall()]
            if stale:
                await db.execute(_DELETE_STALE_CHUNKS_SQL, (document_id, len(chunks)))
            await self._set_total(db, document_id, len(chunks))
            await db.commit()
        return stale

    async def get_chunk(self, chunk_id: str) -> TextChunk | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_CHUNK_SQL, (chunk_id,))
            row = await cursor.fetchone()
        return self._row_to_chunk(row) if row else None

    async def get_chunks(self, document_id: str) -> list[TextChunk]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_CHUNKS_SQL, (document_id,))
            rows = await cursor.fetchall()
        return [self._row_to_chunk(row) for row in rows]

    async def mark_chunk_indexed(self, chunk_id: str, document_id: str, point_id: int) -> bool:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("BEGIN IMMEDIATE;")
            cursor = await db.execute(_CLAIM_CHUNK_SQL, (str(point_id), chunk_id))
            if cursor.rowcount == 0:
                await db.rollback()
                return False
            await db.execute(_INCREMENT_PROCESSED_SQL, (_now(), document_id))
            await db.commit()
        return True
