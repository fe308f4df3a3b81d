import asyncio
import base64
import hashlib

from shared.helper.HelperConfig import HelperConfig

HASH_BLOCK_SIZE = 64 * 1024


class ChangeTracker:
    """Content hashing of source files."""

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()

    @staticmethod
    def hash_file(file_path: str) -> str:
        """SHA-256 over the file bytes, base64-encoded. Depends on content only."""
        digest = hashlib.sha256()
        with open(file_path, "rb") as f:
            for block in iter(lambda: f.read(HASH_BLOCK_SIZE), b""):
                digest.update(block)
        return base64.b64encode(digest.digest()).decode("ascii")

    async def compute_file_hash(self, file_path: str) -> str:
        """Hash a file without blocking the event loop.

        Raises:
            OSError: If the file cannot be read.
        """
        return await asyncio.to_thread(self.hash_file, file_path)
