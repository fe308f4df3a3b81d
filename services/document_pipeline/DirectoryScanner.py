import os

from shared.helper.HelperConfig import HelperConfig


class DirectoryScanner:
    """Enumerates candidate source files below a content root. Blocking; run in a thread."""

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()

    def get_subdirectories(self, root_directory: str) -> list[str]:
        """Return every directory below root_directory (recursive, sorted).

        Raises:
            FileNotFoundError: If root_directory does not exist.
        """
        if not os.path.isdir(root_directory):
            self.logging.error("Content directory does not exist: %s", root_directory)
            raise FileNotFoundError(f"Content directory does not exist: {root_directory}")

        subdirectories: list[str] = []
        for current, dirs, _ in os.walk(root_directory):
            # skip hidden directories like .git
            dirs[:] = sorted(d for d in dirs if not d.startswith("."))
            subdirectories.extend(os.path.join(current, d) for d in dirs)
        return sorted(subdirectories)

    def get_files(self, directory: str, supported_extensions: list[str]) -> list[str]:
        """Return the files directly inside directory whose extension is supported.

        Extensions are compared case-insensitively, with or without leading dot.
        A missing directory yields an empty list.
        """
        if not os.path.isdir(directory):
            self.logging.warning("Directory does not exist, skipping: %s", directory)
            return []

        extensions = {
            ext.lower() if ext.startswith(".") else f".{ext.lower()}"
            for ext in supported_extensions
        }
        files = []
        for entry in sorted(os.listdir(directory)):
            path = os.path.join(directory, entry)
            if os.path.isfile(path) and os.path.splitext(entry)[1].lower() in extensions:
                files.append(path)
        return files
