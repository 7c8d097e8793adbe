"""Tar and ar archive writers for Debian package payloads.

Both archives are append-only: members are written in the order they are
added and no member can be added once the archive is finalized.
"""

import gzip
import io
import logging
import stat
import tarfile

from debpack.errors import ArchiveClosedError

logger = logging.getLogger(__name__)

AR_MAGIC = b"!<arch>\n"
AR_HEADER_END = b"`\n"
AR_NAME_LENGTH = 16
AR_MEMBER_MODE = stat.S_IFREG | 0o600
TAR_MEMBER_MODE = 0o644

DEBIAN_BINARY_VERSION = b"2.0\n"


class TarArchive:
    """In-memory tar archive with a fixed mode and no timestamps or owners."""

    def __init__(self) -> None:
        self._buffer = io.BytesIO()
        self._tar = tarfile.open(fileobj=self._buffer, mode="w", format=tarfile.GNU_FORMAT)
        self._names: list[str] = []
        self._content: bytes | None = None
        self._gzipped = False

    @property
    def closed(self) -> bool:
        return self._content is not None

    @property
    def names(self) -> list[str]:
        return list(self._names)

    def add_member(self, name: str, content: bytes) -> None:
        """Append a regular file member.

        Raises:
            ArchiveClosedError: If the archive was already finalized or gzipped
        """
        if self.closed:
            raise ArchiveClosedError(f"Cannot add {name!r}: tar archive already closed")

        info = tarfile.TarInfo(name)
        info.size = len(content)
        info.mode = TAR_MEMBER_MODE
        self._tar.addfile(info, io.BytesIO(content))
        self._names.append(name)
        logger.debug(f"Added tar member {name} ({len(content)} bytes)")

    def finalize(self) -> bytes:
        """Write the tar trailer and return the uncompressed archive bytes."""
        if self._content is None:
            self._tar.close()
            self._content = self._buffer.getvalue()
        return self._content

    def gzip(self) -> bytes:
        """Finalize the archive and return it gzip-compressed.

        Raises:
            ArchiveClosedError: If the archive was already gzipped
        """
        if self._gzipped:
            raise ArchiveClosedError("Tar archive already gzipped")

        content = self.finalize()
        self._gzipped = True
        # mtime=0 keeps the gzip header free of the build time
        return gzip.compress(content, mtime=0)


class ArArchive:
    """In-memory ``ar`` container in the common format used by dpkg."""

    def __init__(self, mtime: int = 0) -> None:
        """Initialize an empty ar archive.

        Args:
            mtime: Modification time written into every member header
        """
        self.mtime = mtime
        self.closed = False
        self._buffer = io.BytesIO()
        self._buffer.write(AR_MAGIC)
        self._names: list[str] = []

    @property
    def names(self) -> list[str]:
        return list(self._names)

    def add_member(self, name: str, content: bytes) -> None:
        """Append a named blob.

        Raises:
            ArchiveClosedError: If the archive was already closed
            ValueError: If the name does not fit the 16 byte header field
        """
        if self.closed:
            raise ArchiveClosedError(f"Cannot add {name!r}: ar archive already closed")
        if len(name.encode("ascii")) > AR_NAME_LENGTH:
            raise ValueError(f"Name {name!r} too long for ar ({AR_NAME_LENGTH} char max)")

        header = (
            name.ljust(16)
            + str(self.mtime).ljust(12)
            + "0".ljust(6)
            + "0".ljust(6)
            + f"{AR_MEMBER_MODE:o}".ljust(8)
            + str(len(content)).ljust(10)
        ).encode("ascii") + AR_HEADER_END

        self._buffer.write(header)
        self._buffer.write(content)
        if len(content) % 2 == 1:
            self._buffer.write(b"\n")

        self._names.append(name)
        logger.debug(f"Added ar member {name} ({len(content)} bytes)")

    def close(self) -> None:
        self.closed = True

    def data(self) -> bytes:
        """Close the archive and return the container bytes."""
        self.close()
        return self._buffer.getvalue()


def build_debian_archive(control_payload: bytes, data_payload: bytes, mtime: int = 0) -> bytes:
    """Assemble a binary package from its gzipped control and data payloads.

    dpkg and apt require ``debian-binary`` first, then the control payload,
    then the data payload.
    """
    deb = ArArchive(mtime=mtime)
    deb.add_member("debian-binary", DEBIAN_BINARY_VERSION)
    deb.add_member("control.tar.gz", control_payload)
    deb.add_member("data.tar.gz", data_payload)
    return deb.data()
