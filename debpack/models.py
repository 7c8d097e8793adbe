"""Data models for debpack."""

import hashlib
from dataclasses import dataclass, field

from debpack.errors import EmptyContentError
from debpack.filesystem import FilesystemReader


@dataclass(frozen=True)
class FileEntry:
    """A file destined for one of the package payloads.

    The checksum is computed once from ``content`` when the entry is created.
    """

    source: str
    destination: str
    content: bytes
    checksum: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "checksum", hashlib.md5(self.content).hexdigest())

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def archive_name(self) -> str:
        """Destination without leading slashes, as listed in md5sums."""
        return self.destination.lstrip("/")

    @classmethod
    def from_path(
        cls, source: str, destination: str, reader: FilesystemReader | None = None
    ) -> "FileEntry":
        """Create a FileEntry by reading ``source``.

        Args:
            source: Local path to read the content from
            destination: Path of the file inside the archive
            reader: Filesystem reader, defaults to the local filesystem

        Returns:
            FileEntry holding the source content and its checksum

        Raises:
            ReadError: If the source is missing or unreadable
            EmptyContentError: If the source is zero-length
        """
        reader = reader or FilesystemReader()
        source = source.strip()
        destination = destination.strip()

        content = reader.read(source)
        if not content:
            raise EmptyContentError(f"No content read: {source} -> {destination}")

        return cls(source=source, destination=destination, content=content)
