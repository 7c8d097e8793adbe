"""Data payload builder: the files installed by the package."""

import logging
import posixpath

from debpack.archives import TarArchive
from debpack.errors import DebpackError, ReadError, ValidationError, sticky
from debpack.filesystem import FilesystemReader
from debpack.models import FileEntry

logger = logging.getLogger(__name__)


class DataBuilder:
    """Builds data.tar.gz from a manifest of destination -> source paths."""

    def __init__(self, manifest: dict[str, str], reader: FilesystemReader | None = None):
        """Initialize the data builder.

        Args:
            manifest: Install destination to local source path; directory
                sources are expanded recursively
            reader: Filesystem reader, defaults to the local filesystem
        """
        self.manifest = manifest
        self.reader = reader or FilesystemReader()
        self.files: list[FileEntry] = []
        self.validated = False
        self.error: DebpackError | None = None

    @sticky
    def validate(self) -> None:
        """Expand the manifest and read every file it names.

        Raises:
            ReadError: If a source is missing or unreadable
            EmptyContentError: If a source file is zero-length
        """
        if self.validated:
            return

        files = []
        for destination, source in self.expand(self.manifest):
            files.append(FileEntry.from_path(source, destination, self.reader))

        self.files = files
        self.validated = True
        logger.info(f"Validated {len(files)} data files ({self.size_kb()} KB)")

    def expand(
        self, manifest: dict[str, str], visited: frozenset[str] = frozenset()
    ) -> list[tuple[str, str]]:
        """Resolve directory sources into (destination, source) pairs per file.

        Raises:
            ValidationError: If a destination or source is blank
            ReadError: If a directory cannot be listed or links back into itself
        """
        expanded = []
        for destination, source in manifest.items():
            destination = destination.strip()
            source = source.strip()
            if not destination:
                raise ValidationError(f"Empty destination for data file {source!r}")
            if not source:
                raise ValidationError(f"Empty source for data file {destination!r}")

            if not self.reader.is_directory(source):
                expanded.append((destination, source))
                continue

            prefix = destination.rstrip("/")
            children = {
                f"{prefix}/{name}": posixpath.join(source, name)
                for name in self.reader.list_directory(source)
            }
            logger.debug(f"Expanding directory {source} into {prefix}/ ({len(children)} entries)")
            real_path = self.reader.resolve(source)
            if real_path in visited:
                raise ReadError(f"Directory cycle at {source!r}")
            expanded.extend(self.expand(children, visited | {real_path}))
        return expanded

    def size_kb(self) -> int:
        """Total content size of all data files in KB, rounded up."""
        size = sum(entry.size for entry in self.files)
        return -(-size // 1024)

    @sticky
    def build(self) -> bytes:
        """Write every data file into a tar archive.

        Returns:
            gzip-compressed tar bytes

        Raises:
            ValidationError: If the manifest has not been validated
        """
        if not self.validated:
            raise ValidationError("Data files must be validated before building")

        tar = TarArchive()
        for entry in self.files:
            tar.add_member(entry.destination, entry.content)

        payload = tar.gzip()
        logger.info(f"Built data payload with {len(self.files)} files ({len(payload)} bytes)")
        return payload
