"""Deterministic identifiers and path-derived metadata.

Every identifier here is a pure function of its inputs, so re-running a stage
for the same source always addresses the same stored records and vector points.
"""

import hashlib
import os
import re
import uuid

DEFAULT_RULESET_ID = "default"
DOCUMENT_KIND_SOURCEBOOK = "Sourcebook"
DOCUMENT_KIND_TRANSCRIPT = "Transcript"

_TRANSCRIPT_SEGMENTS = {"transcript", "transcripts"}
_PAGE_MARKER = re.compile(r"---\s*Page\s+(\d+)\s*---", re.IGNORECASE)


def get_relative_directory(file_path: str, root_directory: str) -> str | None:
    """Return the directory of file_path relative to root_directory.

    Args:
        file_path (str): Absolute path of the file.
        root_directory (str): The scan root.

    Returns:
        str | None: "/"-separated relative directory, or None if the file lies
                    directly in the root.
    """
    file_dir = os.path.dirname(os.path.abspath(file_path))
    relative = os.path.relpath(file_dir, os.path.abspath(root_directory))
    if relative in (".", ""):
        return None
    return relative.replace(os.sep, "/")


def _segments(relative_directory: str | None) -> list[str]:
    if not relative_directory:
        return []
    return [s for s in re.split(r"[\\/]", relative_directory) if s]


def extract_ruleset_id(relative_directory: str | None) -> str:
    """Return the first path segment of relative_directory, or "default"."""
    segments = _segments(relative_directory)
    return segments[0] if segments else DEFAULT_RULESET_ID


def determine_document_kind(relative_directory: str | None) -> str:
    """Classify a source file by its location.

    Files below a "transcript"/"transcripts" directory are session transcripts,
    everything else is treated as a sourcebook.
    """
    if any(s.lower() in _TRANSCRIPT_SEGMENTS for s in _segments(relative_directory)):
        return DOCUMENT_KIND_TRANSCRIPT
    return DOCUMENT_KIND_SOURCEBOOK


def make_document_id(ruleset_id: str, file_name: str) -> str:
    """Build the deterministic document id from (ruleset_id, file_name)."""
    return str(uuid.uuid5(uuid.NAMESPACE_OID, f"{ruleset_id}:{file_name}"))


def make_chunk_id(document_id: str, chunk_index: int) -> str:
    """Build the chunk id, e.g. "<document_id>_chunk_3"."""
    return f"{document_id}_chunk_{chunk_index}"


def make_point_id(logical_id: str) -> int:
    """Derive a stable unsigned 64-bit vector point id from a logical id.

    The first 8 bytes of SHA-256(UTF-8) are read little-endian. A zero value
    falls through to the following 8-byte segments; if all are zero, 1 is used.

    Args:
        logical_id (str): Chunk id or message id.

    Returns:
        int: A point id in [1, 2**64 - 1].
    """
    digest = hashlib.sha256(logical_id.encode("utf-8")).digest()
    for offset in range(0, len(digest), 8):
        value = int.from_bytes(digest[offset:offset + 8], "little")
        if value != 0:
            return value
    return 1


def extract_page_number(chunk_text: str) -> int | None:
    """Return the page number of the first "--- Page N ---" marker in a chunk."""
    match = _PAGE_MARKER.search(chunk_text or "")
    return int(match.group(1)) if match else None
