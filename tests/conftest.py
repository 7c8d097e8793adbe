"""Shared fixtures for unpacking built packages."""

import gzip
import io
import tarfile
from datetime import UTC, datetime

import pytest

from debpack.config_manager import PackageDescriptor

AR_MAGIC = b"!<arch>\n"


def read_ar_members(data: bytes) -> list[tuple[str, bytes]]:
    assert data[:8] == AR_MAGIC, "Missing ar global header"
    members = []
    offset = 8
    while offset < len(data):
        header = data[offset : offset + 60]
        assert len(header) == 60, "Truncated member header"
        assert header[58:60] == b"`\n"
        name = header[0:16].decode("ascii").strip()
        size = int(header[48:58].decode("ascii").strip())
        offset += 60
        members.append((name, data[offset : offset + size]))
        offset += size + size % 2
    return members


def read_tar_gz(data: bytes) -> list[tuple[str, bytes]]:
    with tarfile.open(fileobj=io.BytesIO(gzip.decompress(data)), mode="r:") as tar:
        return [(member.name, tar.extractfile(member).read()) for member in tar.getmembers()]


@pytest.fixture
def unpack_ar():
    return read_ar_members


@pytest.fixture
def unpack_tar_gz():
    return read_tar_gz


@pytest.fixture
def build_time():
    return datetime(2024, 1, 15, 12, 30, 0, tzinfo=UTC)


@pytest.fixture
def make_descriptor():
    """Factory for a valid descriptor; keyword arguments override fields."""

    def factory(**overrides) -> PackageDescriptor:
        fields = {
            "package": "hello",
            "version": "1.2.3",
            "architecture": "amd64",
            "maintainer": "Jane Doe <jane@example.com>",
            "description": "Prints a greeting",
        }
        fields.update(overrides)
        return PackageDescriptor(**fields)

    return factory
