"""Local filesystem access used to resolve manifest and script sources."""

import logging
import os
from pathlib import Path

from debpack.errors import ReadError

logger = logging.getLogger(__name__)


class FilesystemReader:
    """Reads source files and enumerates source directories."""

    def read(self, path: str) -> bytes:
        """Read a whole file.

        Raises:
            ReadError: If the path does not exist or cannot be read
        """
        try:
            content = Path(path).read_bytes()
        except OSError as e:
            raise ReadError(f"Cannot read {path!r}: {e.strerror or e}") from e

        logger.debug(f"Read {len(content)} bytes from {path}")
        return content

    def is_directory(self, path: str) -> bool:
        return Path(path).is_dir()

    def resolve(self, path: str) -> str:
        """Canonical path with symlinks resolved."""
        return os.path.realpath(path)

    def list_directory(self, path: str) -> list[str]:
        """List the entry names of a directory, sorted by name.

        Raises:
            ReadError: If the directory cannot be listed
        """
        try:
            return sorted(entry.name for entry in Path(path).iterdir())
        except OSError as e:
            raise ReadError(f"Cannot list {path!r}: {e.strerror or e}") from e
