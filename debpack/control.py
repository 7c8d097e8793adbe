"""Control payload builder: package metadata, checksums and maintainer scripts."""

import logging
import re
from datetime import datetime

from debpack.archives import TarArchive
from debpack.config import build_timestamp
from debpack.config_manager import RELATION_FIELDS, SCRIPT_NAMES, PackageDescriptor
from debpack.data import DataBuilder
from debpack.errors import DebpackError, ValidationError, sticky
from debpack.filesystem import FilesystemReader
from debpack.models import FileEntry

logger = logging.getLogger(__name__)

SEMANTIC_VERSION = re.compile(r"\d+\.\d+\.\d+", re.ASCII)
PRIORITIES = ("required", "important", "standard", "optional")

UNVALIDATED = "unvalidated"
VALIDATED = "validated"
BUILT = "built"


class ControlBuilder:
    """Builds control.tar.gz for a package descriptor.

    The builder moves from ``unvalidated`` to ``validated`` to ``built``.
    The first failure is kept in ``error`` and re-raised by every later call.
    """

    def __init__(
        self,
        descriptor: PackageDescriptor,
        reader: FilesystemReader | None = None,
        build_time: datetime | None = None,
    ):
        """Initialize the control builder.

        Args:
            descriptor: Package metadata and script paths
            reader: Filesystem reader, defaults to the local filesystem
            build_time: Timestamp for the Date field, defaults to build_timestamp()
        """
        self.descriptor = descriptor
        self.reader = reader or FilesystemReader()
        self.build_time = build_time
        self.scripts: list[FileEntry] = []
        self.state = UNVALIDATED
        self.error: DebpackError | None = None

    @sticky
    def validate(self) -> None:
        """Check mandatory fields and load the maintainer scripts.

        Raises:
            ValidationError: On the first missing or malformed mandatory field
            ReadError: If a specified script cannot be read
        """
        if self.state != UNVALIDATED:
            return

        self._check_mandatory_fields()
        self.scripts = self._load_scripts()
        self.state = VALIDATED
        logger.info(
            f"Validated control metadata for {self.descriptor.package.strip()} "
            f"{self.descriptor.version.strip()} ({len(self.scripts)} scripts)"
        )

    def _check_mandatory_fields(self) -> None:
        d = self.descriptor
        if not d.package.strip():
            raise ValidationError("Invalid package name: must not be empty")
        if not SEMANTIC_VERSION.fullmatch(d.version.strip()):
            raise ValidationError(f"Invalid version {d.version!r}: expected MAJOR.MINOR.PATCH")
        if not d.architecture.strip():
            raise ValidationError("Invalid architecture: must not be empty")
        if not d.maintainer.strip():
            raise ValidationError("Invalid maintainer: must not be empty")
        if not d.description.strip():
            raise ValidationError("Invalid description: must not be empty")

    def _load_scripts(self) -> list[FileEntry]:
        scripts = []
        for name in SCRIPT_NAMES:
            source = self.descriptor.scripts.get(name, "")
            if not source.strip():
                continue
            scripts.append(FileEntry.from_path(source, name, self.reader))
            logger.debug(f"Loaded {name} script from {source.strip()}")
        return scripts

    def render_control(self, installed_size_kb: int) -> str:
        """Render the control file text."""
        d = self.descriptor
        build_time = self.build_time or build_timestamp()
        synopsis, *extended = d.description.strip().split("\n")

        lines = [
            f"Package: {d.package.strip()}",
            f"Version: {d.version.strip()}",
            f"Architecture: {d.architecture.strip()}",
            f"Maintainer: {d.maintainer.strip()}",
            f"Installed-Size: {installed_size_kb}",
            f"Date: {build_time.strftime('%a, %d %b %Y %H:%M:%S UTC')}",
            f"Description: {synopsis.strip()}",
        ]
        lines.extend(" " + line.rstrip() for line in extended)

        homepage = d.homepage.strip()
        if homepage:
            lines.append(f"Homepage: {homepage}")

        if d.essential.strip() == "yes":
            lines.append("Essential: yes")

        section = d.section.strip()
        if section:
            lines.append(f"Section: {section}")

        # Unknown priorities are dropped rather than rejected
        priority = d.priority.strip()
        if priority in PRIORITIES:
            lines.append(f"Priority: {priority}")

        for kind, field_name in RELATION_FIELDS.items():
            entries = [entry.strip() for entry in d.relations.get(kind, [])]
            entries = [entry for entry in entries if entry]
            if entries:
                lines.append(f"{field_name}: {', '.join(entries)}")

        return "\n".join(lines) + "\n"

    def render_checksums(self, files: list[FileEntry]) -> str:
        """Render md5sums: one "<md5> <path>" line per data file."""
        lines = [f"{entry.checksum} {entry.archive_name}" for entry in files]
        return "".join(f"{line}\n" for line in lines)

    def render_listing(self, entries: list[str]) -> str | None:
        """Render a conffiles/shlibs listing, or None when it has no entries."""
        lines = [entry for entry in entries if entry]
        if not lines:
            return None
        return "\n".join(lines) + "\n"

    @sticky
    def build(self, data: DataBuilder) -> bytes:
        """Write the control file, listings and scripts into a tar archive.

        Args:
            data: Validated data builder providing file checksums and size

        Returns:
            gzip-compressed tar bytes

        Raises:
            ValidationError: If this builder or ``data`` has not been validated
        """
        if self.state == UNVALIDATED:
            raise ValidationError("Control metadata must be validated before building")
        if self.state == BUILT:
            raise ValidationError("Control payload already built")
        if not data.validated:
            raise ValidationError("Data files must be validated before the control file")

        tar = TarArchive()
        tar.add_member("control", self.render_control(data.size_kb()).encode("utf-8"))
        tar.add_member("md5sums", self.render_checksums(data.files).encode("utf-8"))

        for name, entries in (("conffiles", self.descriptor.conffiles), ("shlibs", self.descriptor.shlibs)):
            listing = self.render_listing(entries)
            if listing is not None:
                tar.add_member(name, listing.encode("utf-8"))

        for script in self.scripts:
            tar.add_member(script.destination, script.content)

        payload = tar.gzip()
        self.state = BUILT
        logger.info(f"Built control payload with members {tar.names} ({len(payload)} bytes)")
        return payload
